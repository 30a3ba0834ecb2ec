import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.config import settings
from storefront.database import create_tables, get_engine
from storefront.presentation.api import order_router, cart_router

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    await create_tables(get_engine())
    logger.info("Таблицы созданы")

    yield

    logger.info("Приложение останавливается...")
    await get_engine().dispose()


app = FastAPI(
    title="Storefront Order Service",
    description="Корзина и заказы интернет-магазина одежды",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CLIENT_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(order_router, prefix="/api")
app.include_router(cart_router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "Storefront Order Service работает", "version": "1.0.0"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
