from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from consultant.logging_config import get_logger
from consultant.models import Assistant, File, Message, Profile, Thread, VectorStore
from consultant.services.errors import PersistenceError
from consultant.services.result import Result

logger = get_logger("store")


@dataclass(frozen=True)
class Turn:
    chat_id: str
    user_id: int
    role: str
    content: str
    created_at: int


class ConversationStore:
    """Local bindings between Avito chats and assistant-API resources, plus turn history."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    # Bindings

    def get_assistant_id(self, user_id: int) -> Optional[str]:
        with self._session() as db:
            row = db.query(Assistant.asst_id).filter(Assistant.user_id == user_id).first()
        return row.asst_id if row else None

    def save_assistant(self, asst_id: str, asst_name: str, user_id: int) -> None:
        logger.info(
            "Saving assistant",
            extra={"context": {"asst_id": asst_id, "asst_name": asst_name, "user_id": user_id}},
        )
        self._insert(Assistant(asst_id=asst_id, asst_name=asst_name, user_id=user_id))

    def get_thread_id(self, chat_id: str) -> Optional[str]:
        with self._session() as db:
            row = db.query(Thread.thread_id).filter(Thread.chat_id == chat_id).first()
        return row.thread_id if row else None

    def save_thread(self, chat_id: str, thread_id: str, asst_id: str) -> None:
        """Insert-only; a second binding for the same chat raises PersistenceError."""
        logger.info("Saving thread", extra={"context": {"chat_id": chat_id, "thread_id": thread_id}})
        self._insert(Thread(chat_id=chat_id, thread_id=thread_id, asst_id=asst_id))

    def get_user_id(self, profile_name: str) -> Optional[int]:
        with self._session() as db:
            row = db.query(Profile.user_id).filter(Profile.profile_name == profile_name).first()
        return row.user_id if row else None

    def get_store_id(self, asst_id: str) -> Optional[str]:
        with self._session() as db:
            row = db.query(VectorStore.store_id).filter(VectorStore.asst_id == asst_id).first()
        return row.store_id if row else None

    def save_store(self, store_id: str, store_name: str, asst_id: str) -> None:
        logger.info(
            "Saving vector store",
            extra={"context": {"store_id": store_id, "store_name": store_name, "asst_id": asst_id}},
        )
        self._insert(VectorStore(store_id=store_id, store_name=store_name, asst_id=asst_id))

    def get_file_id(self, store_id: str, file_name: str, file_type: str) -> Optional[str]:
        with self._session() as db:
            row = (
                db.query(File.file_id)
                .filter(File.store_id == store_id, File.file_name == file_name, File.file_type == file_type)
                .first()
            )
        return row.file_id if row else None

    def supersede_file(
        self,
        store_id: str,
        old_file_id: Optional[str],
        new_file_id: str,
        file_name: str,
        file_type: str,
    ) -> Result[None]:
        """Replace the active file record for (store, name, type) in one transaction."""
        logger.info(
            "Superseding file record",
            extra={
                "context": {
                    "store_id": store_id,
                    "old_file_id": old_file_id,
                    "new_file_id": new_file_id,
                    "file_name": file_name,
                    "file_type": file_type,
                }
            },
        )
        try:
            with self._session() as db, db.begin():
                if old_file_id:
                    db.query(File).filter(File.store_id == store_id, File.file_id == old_file_id).delete(
                        synchronize_session=False
                    )
                db.add(File(file_id=new_file_id, file_name=file_name, file_type=file_type, store_id=store_id))
        except SQLAlchemyError as exc:
            logger.error("Failed to supersede file record", extra={"context": {"error": str(exc)}})
            return Result.failure(str(exc), "db_error")
        return Result.success(None)

    # Turns

    def get_recent_turns(self, chat_id: str, limit: int) -> List[dict]:
        """Return at most ``limit`` turns, most recent first.

        Callers must reverse the list to get chronological order.
        """
        if limit <= 0:
            return []
        with self._session() as db:
            rows = (
                db.query(Message.role, Message.content)
                .filter(Message.chat_id == chat_id)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(limit)
                .all()
            )
        return [{"role": row.role, "content": row.content} for row in rows]

    def count_turns(self, chat_id: str) -> int:
        with self._session() as db:
            return db.query(Message).filter(Message.chat_id == chat_id).count()

    def save_turn_pair(self, user_turn: Turn, assistant_turn: Turn) -> Result[None]:
        """Persist both turns or neither."""
        try:
            with self._session() as db, db.begin():
                for turn in (user_turn, assistant_turn):
                    db.add(_to_message(turn))
                    db.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to save turn pair",
                extra={"context": {"chat_id": user_turn.chat_id, "error": str(exc)}},
            )
            return Result.failure(str(exc), "db_error")
        return Result.success(None)

    def _insert(self, row) -> None:
        try:
            with self._session() as db, db.begin():
                db.add(row)
        except SQLAlchemyError as exc:
            logger.error(
                f"Failed to insert into {row.__tablename__}",
                extra={"context": {"error": str(exc)}},
            )
            raise PersistenceError(f"failed to save {row.__tablename__} record: {exc}") from exc


def _to_message(turn: Turn) -> Message:
    return Message(
        chat_id=turn.chat_id,
        user_id=turn.user_id,
        role=turn.role,
        content=turn.content,
        created_at=turn.created_at,
    )
