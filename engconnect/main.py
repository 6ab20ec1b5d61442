from fastapi import FastAPI
from sqlmodel import Session

from engconnect import auth
from engconnect.config import require_secret_key
from engconnect.db import engine, init_db
from engconnect.errors import install_error_handlers
from engconnect.logging_config import configure_logging
from engconnect.routers import ideas, problems, quiz

logger = configure_logging()

app = FastAPI(title="Engineer Connect API")
install_error_handlers(app)

app.include_router(auth.router)
app.include_router(problems.router)
app.include_router(ideas.router)
app.include_router(quiz.router)


@app.on_event("startup")
async def on_startup():
    require_secret_key()
    init_db()
    with Session(engine) as session:
        auth.init_admin(session)
    logger.info("Engineer Connect API ready")

