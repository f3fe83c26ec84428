import httpx

from config import settings
from tripdesk.logger import logger


class ApiConnection:
    client: httpx.AsyncClient = None


conn = ApiConnection()


async def get_http_client() -> httpx.AsyncClient:
    if conn.client is None:
        await connect_to_trip_api()
    return conn.client


async def connect_to_trip_api():
    conn.client = httpx.AsyncClient(
        base_url=settings.TRIP_API_URL.rstrip("/"),
        timeout=settings.TRIP_API_TIMEOUT,
        headers={"Accept": "application/json"},
    )
    logger.info(f"Trip API client ready: {settings.TRIP_API_URL}")


async def close_trip_api_connection():
    if conn.client:
        await conn.client.aclose()
        conn.client = None
        logger.info("Trip API client closed")
