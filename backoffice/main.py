import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

# Routers (usar imports absolutos para evitar issues según cómo se ejecute uvicorn)
from backoffice import config
from backoffice.routes import financings, financing_payments
from backoffice.utils.errors import AppError

# -----------------------------------------------------------------------------
# Logging base
# -----------------------------------------------------------------------------
logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("uvicorn.error")

# -----------------------------------------------------------------------------
# Lifespan
# -----------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Backoffice de financiamientos iniciado (ENV=%s)", config.ENV)
    try:
        # ---- aplicación corriendo ----
        yield
    finally:
        logger.info("Backoffice de financiamientos detenido")

# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------
app = FastAPI(title="Backoffice - Financiamientos", lifespan=lifespan)

# -----------------------------------------------------------------------------
# CORS por entorno
# -----------------------------------------------------------------------------
ALLOWED_ORIGINS = list(config.CORS_ORIGINS)

if config.ENV == "prod":
    if not ALLOWED_ORIGINS:
        logger.warning("CORS_ORIGINS vacío en prod: sólo clientes sin navegador podrán acceder")
    elif any(o == "*" for o in ALLOWED_ORIGINS):
        raise RuntimeError('En prod, CORS_ORIGINS no puede contener "*". Definí dominios explícitos.')
else:
    if not ALLOWED_ORIGINS:
        ALLOWED_ORIGINS = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=600,  # cachea el preflight 10 min
)

# -----------------------------------------------------------------------------
# Handlers y health
# -----------------------------------------------------------------------------
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
    content = {"detail": exc.message}
    if exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)

def _jsonable_errors(errors):
    # ctx puede traer la excepción original (no serializable)
    out = []
    for e in errors:
        e = dict(e)
        if "ctx" in e:
            e["ctx"] = {k: str(v) for k, v in e["ctx"].items()}
        out.append(e)
    return out

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    logger.error("422 detail: %s", exc.errors())
    return JSONResponse(status_code=422, content={"detail": _jsonable_errors(exc.errors())})

@app.get("/health")
def health():
    return {"ok": True}

# (Opcional) compat k8s/PAAS
@app.get("/healthz")
def healthz():
    return {"ok": True}

# -----------------------------------------------------------------------------
# Routers
# -----------------------------------------------------------------------------
app.include_router(financings.router,         prefix="/financings",         tags=["Financings"])
app.include_router(financing_payments.router, prefix="/financing-payments", tags=["Financing payments"])
