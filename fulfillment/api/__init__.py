# fulfillment/api/__init__.py
from fastapi import FastAPI
from fulfillment.api.errors import register_error_handlers
from fulfillment.api.routers import carts, files, health, orders, payments, webhooks


def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(
        title="Fulfillment Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_error_handlers(app)

    # Include routers
    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(files.router)
    app.include_router(payments.router)
    app.include_router(webhooks.router)

    return app
