from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from tripdesk.http import connect_to_trip_api, close_trip_api_connection
from tripdesk.logger import logger
from tripdesk.routers import trips, purchases, sales, stocks, logistics, exports
from tripdesk.services.status_service import InvalidTransition, PermissionDenied
from tripdesk.services.trip_service import TripApiError
from tripdesk.services.validation_service import OverpaymentConfirmationRequired, TripValidationError
from config import settings as app_settings

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await connect_to_trip_api()
    yield
    # Shutdown
    await close_trip_api_connection()

app = FastAPI(
    title="Trip Desk",
    description="Purchase, sale, stock and settlement desk for poultry trading trips",
    version="1.0.0",
    lifespan=lifespan
)

allowed_origins = app_settings.ALLOWED_ORIGINS.split(",") if app_settings.ALLOWED_ORIGINS else ["http://localhost:5173"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TripValidationError)
async def validation_error_handler(request: Request, exc: TripValidationError):
    return JSONResponse({"success": False, "message": exc.errors[0], "errors": exc.errors}, status_code=422)


@app.exception_handler(OverpaymentConfirmationRequired)
async def overpayment_handler(request: Request, exc: OverpaymentConfirmationRequired):
    return JSONResponse({
        "success": False,
        "message": exc.overpayment.message(app_settings.CURRENCY),
        "overpayment": exc.overpayment.as_dict(),
    }, status_code=409)


@app.exception_handler(PermissionDenied)
async def permission_handler(request: Request, exc: PermissionDenied):
    return JSONResponse({"success": False, "message": str(exc)}, status_code=403)


@app.exception_handler(InvalidTransition)
async def transition_handler(request: Request, exc: InvalidTransition):
    return JSONResponse({"success": False, "message": str(exc)}, status_code=409)


@app.exception_handler(TripApiError)
async def trip_api_handler(request: Request, exc: TripApiError):
    status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 502
    logger.warning(f"{request.method} {request.url.path}: trip service error {exc.status_code}: {exc.message}")
    return JSONResponse({"success": False, "message": exc.message}, status_code=status_code)


# Include routers
app.include_router(trips.router, prefix="/trips", tags=["Trips"])
app.include_router(purchases.router, prefix="/trips", tags=["Purchases"])
app.include_router(sales.router, prefix="/trips", tags=["Sales & Receipts"])
app.include_router(stocks.router, prefix="/trips", tags=["Stock"])
app.include_router(logistics.router, prefix="/trips", tags=["Expenses & Diesel"])
app.include_router(exports.router, prefix="/trips", tags=["Exports"])


@app.get("/")
async def root():
    return {"success": True, "service": "Trip Desk", "tripApi": app_settings.TRIP_API_URL}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
