from fastapi import APIRouter

from snooker_api.api.v1.endpoints import (
    analytics,
    auth,
    inventory,
    sessions,
    snooker_houses,
    tables,
    users,
)

api_router_v1 = APIRouter()

api_router_v1.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router_v1.include_router(users.router, prefix="/users", tags=["Users"])
api_router_v1.include_router(snooker_houses.router, prefix="/snooker-houses", tags=["Snooker Houses"])
api_router_v1.include_router(tables.router, prefix="/tables", tags=["Tables"])
api_router_v1.include_router(sessions.router, prefix="/sessions", tags=["Sessions"])
api_router_v1.include_router(inventory.router, prefix="/inventory", tags=["Inventory"])
api_router_v1.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])


@api_router_v1.get("/", tags=["Root V1"])
async def read_root_v1():
    return {"message": "API V1 operational"}
