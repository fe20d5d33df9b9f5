from consultant.services.assistant_service import AssistantOrchestrator, RunStatus
from consultant.services.completion_service import CompletionOrchestrator
from consultant.services.conversation_service import ChatLocks, record_exchange, with_item_context
from consultant.services.history_service import HistoryAssembler
from consultant.services.http_client import RetryConfig, RetryingTransport
from consultant.services.result import Result
from consultant.services.store_service import ConversationStore, Turn
from consultant.services.upload_service import KnowledgeUploader
