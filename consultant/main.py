import httpx
from fastapi import FastAPI

from consultant.config import Settings, settings
from consultant.database import create_db_engine, create_session_factory, init_db
from consultant.logging_config import get_logger, setup_logging
from consultant.routers import upload, webhook
from consultant.services.assistant_service import AssistantOrchestrator
from consultant.services.avito_service import AvitoClient
from consultant.services.completion_service import CompletionOrchestrator
from consultant.services.conversation_service import ChatLocks
from consultant.services.history_service import HistoryAssembler
from consultant.services.http_client import RetryConfig, RetryingTransport
from consultant.services.llm import OpenAIAssistantClient
from consultant.services.store_service import ConversationStore
from consultant.services.upload_service import KnowledgeUploader

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="Avito Consultant",
    description="Relays Avito messenger chats to an OpenAI assistant",
    version="0.1.0",
)

app.include_router(webhook.router)
app.include_router(upload.router)


def build_services(target: FastAPI, config: Settings) -> None:
    """Wire the store, upstream clients and responders onto ``target.state``."""
    engine = create_db_engine(config.database_url)
    init_db(engine)
    store = ConversationStore(create_session_factory(engine))

    retry = RetryConfig(
        max_attempts=config.retry_max_attempts,
        base_delay=config.retry_base_delay,
        max_delay=config.retry_max_delay,
    )
    openai_http = httpx.AsyncClient(timeout=config.openai_timeout)
    avito_http = httpx.AsyncClient(timeout=config.avito_timeout)

    assistant_client = OpenAIAssistantClient(
        RetryingTransport(openai_http, retry, name="openai"),
        api_key=config.openai_api_key,
        base_url=config.openai_url,
        default_model=config.openai_model,
    )
    avito = AvitoClient(RetryingTransport(avito_http, retry, name="avito"), config.avito_token, config.avito_api_url)

    locks = ChatLocks()
    if config.openai_mode == "chat":
        responder = CompletionOrchestrator(
            assistant_client,
            HistoryAssembler(store, config.openai_prompt, config.history_limit),
            model=config.openai_model,
            temperature=config.openai_temperature,
            locks=locks,
        )
    else:
        responder = AssistantOrchestrator(
            assistant_client,
            store,
            poll_interval=config.run_poll_interval,
            max_wait=config.run_max_wait,
            locks=locks,
        )

    target.state.settings = config
    target.state.engine = engine
    target.state.http_clients = [openai_http, avito_http]
    target.state.avito = avito
    target.state.responder = responder
    target.state.uploader = KnowledgeUploader(assistant_client, store, config.openai_model, config.openai_prompt)

    logger.info(
        "Services initialized",
        extra={"context": {"mode": config.openai_mode, "model": config.openai_model, "history_limit": config.history_limit}},
    )


@app.on_event("startup")
async def startup() -> None:
    build_services(app, settings)


@app.on_event("shutdown")
async def shutdown() -> None:
    for client in getattr(app.state, "http_clients", []):
        await client.aclose()
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        engine.dispose()


@app.get("/health")
async def health():
    return {"ok": True}
