import json
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from checkout_gateway.config import Settings
from checkout_gateway.dependencies import get_gateway, get_settings, get_webhook_receiver
from checkout_gateway.errors import GatewayError, ValidationError
from checkout_gateway.logging_config import configure_logging
from checkout_gateway.routes import router
from checkout_gateway.service import PaymentGateway, WebhookReceiver

settings = get_settings()
configure_logging(settings.log_level, settings.log_format)
logger = structlog.get_logger(component="server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("server_starting", environment=settings.airwallex_env,
                processor=settings.processor, port=settings.port)
    yield
    if get_gateway.cache_info().currsize:
        await get_gateway().aclose()


app = FastAPI(title="Checkout Payment Gateway", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.code, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    error = ValidationError("Malformed request body", details=jsonable_errors(exc))
    return JSONResponse(status_code=400, content=error.to_dict())


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg")}
        for e in exc.errors()
    ]


@app.get("/")
async def health(
    gateway: PaymentGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings)
):
    return {
        "status": "ok",
        "environment": settings.airwallex_env,
        "backend": gateway.backend.name,
        "simulation": gateway.backend.simulated,
        "fallback_to_simulation": gateway.fallback_to_simulation,
    }


@app.post("/api/webhook")
@app.post("/api/webhook/airwallex")
async def processor_webhook(
    request: Request,
    receiver: WebhookReceiver = Depends(get_webhook_receiver)
):
    payload = await request.body()

    try:
        event = json.loads(payload)
    except ValueError:
        raise ValidationError("Invalid payload")

    logger.info("webhook_received", event_type=event.get("type") if isinstance(event, dict) else None)
    receiver.handle(event)
    return {"received": True}


if __name__ == "__main__":
    uvicorn.run("checkout_gateway.main:app", host="0.0.0.0", port=settings.port)
