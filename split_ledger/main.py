import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from split_ledger.db.database import Base, engine, check_db_connection
from split_ledger.logging_config import configure_logging
from split_ledger.api.v1.routes.users import router as users_router
from split_ledger.api.v1.routes.groups import router as groups_router
from split_ledger.api.v1.routes.expenses import router as expenses_router
from split_ledger.api.v1.routes.balances import router as balances_router
from split_ledger.utils.exceptions import InvalidInputError

# Register models on Base.metadata before create_all
from split_ledger.models import balances, expenses, groups  # noqa: F401

configure_logging()
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Split Ledger - Balances and Settlements",
    description="Tracks group expenses, computes balances and plans settlement payments",
    version="1.0.0"
)

app.include_router(users_router)
app.include_router(groups_router)
app.include_router(expenses_router)
app.include_router(balances_router)


@app.exception_handler(InvalidInputError)
def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.info(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/")
def read_root():
    return {"message": "Split Ledger API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    if not check_db_connection():
        return JSONResponse(status_code=503, content={"status": "unhealthy", "database": "unreachable"})
    return {"status": "healthy"}
