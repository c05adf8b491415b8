"""
PricePilot API

Product catalog side-channel read by the price oracle.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import products
from pricepilot.config import PricePilotConfig
from pricepilot.logging_config import configure_logging
from pricepilot.store.catalog import ProductCatalog


def create_app(catalog: Optional[ProductCatalog] = None) -> FastAPI:
    config = PricePilotConfig.from_env()
    logger = configure_logging(config.log.level)
    catalog = catalog or ProductCatalog(config.storage.catalog_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Serving product catalog from %s", catalog.path)
        yield

    app = FastAPI(
        title="PricePilot API",
        description="Product catalog for the PricePilot price oracle.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    products.set_catalog(catalog)
    app.include_router(products.router)

    @app.get("/api", tags=["Health"])
    async def api_info():
        """API info endpoint."""
        return {
            "service": "PricePilot API",
            "version": "0.1.0",
            "status": "running",
            "products_loaded": len(catalog.products()),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3001)
