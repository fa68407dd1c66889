# dhakacart/api/__init__.py
from fastapi import FastAPI

from dhakacart.api.routers import admin, health, orders, payments, products


def include_routers(app: FastAPI) -> FastAPI:
    app.include_router(health.router)
    app.include_router(products.router)
    app.include_router(orders.router)
    app.include_router(payments.router)
    app.include_router(admin.router)
    return app
