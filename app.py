"""
Shopping Route AI API

FastAPI wrapper exposing route optimization, trip learning and profile
management.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from shopping_ai.models.shopping_trip import ShoppingTripRecord
from shopping_ai.system import create_shopping_ai_system

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(
    title="Shopping Route AI",
    description="Personalized, food-safety ordered grocery routes that learn from completed trips",
    version="1.0.0",
)


class RouteRequest(BaseModel):
    user_id: str
    store: str
    shopping_list: Dict[str, List[Union[str, Dict[str, Any]]]] = Field(default_factory=dict)
    preferences: Optional[Dict[str, Any]] = None


class RecommendationRequest(BaseModel):
    store: str
    shopping_list: Dict[str, List[Union[str, Dict[str, Any]]]] = Field(default_factory=dict)


@app.get("/")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "shopping-route-ai",
        "version": "1.0.0",
    }


@app.get("/health")
async def health():
    """Alias for health check."""
    return await health_check()


@app.post("/route/optimize")
async def optimize(request: RouteRequest):
    """
    Optimize a shopping route for a user.

    Always answers 200; a failed optimization comes back as a fallback
    route with algorithm "Fallback".
    """
    system = create_shopping_ai_system(request.user_id)
    result = await system.optimize_route(
        request.shopping_list, request.store, request.preferences
    )
    return JSONResponse(content=result.to_dict())


@app.post("/users/{user_id}/trips")
async def record_trip(user_id: str, trip: ShoppingTripRecord):
    """Learn from a completed shopping trip."""
    system = create_shopping_ai_system(user_id)
    result = await system.learn_from_trip(trip)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return result.model_dump()


@app.post("/users/{user_id}/recommendations")
async def recommendations(user_id: str, request: RecommendationRequest):
    system = create_shopping_ai_system(user_id)
    bundle = await system.get_personalized_recommendations(
        request.shopping_list, request.store
    )
    return bundle.model_dump(mode='json')


@app.get("/users/{user_id}/learning-status")
async def learning_status(user_id: str):
    system = create_shopping_ai_system(user_id)
    status = await system.get_learning_status()
    return status.model_dump(mode='json')


@app.get("/users/{user_id}/analytics")
async def analytics(user_id: str):
    system = create_shopping_ai_system(user_id)
    result = await system.get_shopping_analytics()
    if result is None:
        raise HTTPException(status_code=500, detail="Analytics unavailable")
    return result.model_dump(mode='json')


@app.get("/users/{user_id}/export")
async def export_profile(user_id: str):
    """Download the user's behavior profile as a versioned export."""
    system = create_shopping_ai_system(user_id)
    export = await system.export_ai_data()
    if export is None:
        raise HTTPException(status_code=500, detail="Export failed")
    return export.model_dump(mode='json')


@app.post("/users/{user_id}/import")
async def import_profile(user_id: str, import_data: Dict[str, Any]):
    """Restore a previously exported profile. Rejects another user's data."""
    system = create_shopping_ai_system(user_id)
    result = await system.import_ai_data(import_data)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result.model_dump()


@app.delete("/users/{user_id}/profile")
async def reset_profile(user_id: str):
    system = create_shopping_ai_system(user_id)
    result = await system.reset_ai_data()
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return result.model_dump()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv('PORT', '8000')))
