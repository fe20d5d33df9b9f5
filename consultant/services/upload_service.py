from pathlib import PurePath
from typing import Optional

from consultant.logging_config import get_logger
from consultant.services.errors import ConsultantError, PersistenceError, ProfileNotFound
from consultant.services.llm.base import AssistantClient
from consultant.services.store_service import ConversationStore

logger = get_logger("upload_service")

FILE_TYPE_INSTRUCTIONS = "instr"
FILE_TYPE_ASSORTMENT = "assrt"


def detect_file_type(file_name: str) -> str:
    """JSON files carry the assortment, anything else is instructions."""
    if PurePath(file_name).suffix.lower() == ".json":
        return FILE_TYPE_ASSORTMENT
    return FILE_TYPE_INSTRUCTIONS


def assistant_name(profile_name: str) -> str:
    return f"{profile_name}-asst"


def vector_store_name(profile_name: str) -> str:
    return f"vector-store_{profile_name}"


class KnowledgeUploader:
    """Upload knowledge files into the profile's assistant vector store.

    Assistant and store are looked up first and created only when missing;
    new ids are persisted before use, so repeated uploads for the same
    profile create nothing new.
    """

    def __init__(self, client: AssistantClient, store: ConversationStore, model: str, instructions: str):
        self.client = client
        self.store = store
        self.model = model
        self.instructions = instructions

    async def upload(self, content: bytes, file_name: str, profile_name: str) -> str:
        file_type = detect_file_type(file_name)
        logger.info(
            "Uploading file to vector store",
            extra={"context": {"file_name": file_name, "file_type": file_type, "profile_name": profile_name}},
        )

        user_id = self.store.get_user_id(profile_name)
        if user_id is None:
            raise ProfileNotFound(profile_name)

        asst_id = await self.ensure_assistant(user_id, profile_name)
        store_id = await self.ensure_vector_store(asst_id, profile_name)

        old_file_id = self.store.get_file_id(store_id, file_name, file_type)

        # the previous file stays live until the new one is attached and recorded
        file_id = await self.client.upload_file(file_name, content)
        await self.client.add_file_to_store(store_id, file_id)

        result = self.store.supersede_file(store_id, old_file_id, file_id, file_name, file_type)
        if not result.ok:
            await self._discard_file(store_id, file_id)
            raise PersistenceError(f"failed to save file record: {result.error}")
        logger.info("File added to vector store", extra={"context": {"store_id": store_id, "file_id": file_id}})

        if old_file_id:
            await self._discard_file(store_id, old_file_id)
        return file_id

    async def _discard_file(self, store_id: str, file_id: str) -> None:
        """Detach and delete a file, logging failures instead of raising."""
        try:
            await self.client.remove_file_from_store(store_id, file_id)
            await self.client.delete_file(file_id)
        except ConsultantError as exc:
            logger.warning(
                "Failed to remove file from vector store",
                extra={"context": {"store_id": store_id, "file_id": file_id, "error": str(exc)}},
            )
            return
        logger.info("File removed", extra={"context": {"store_id": store_id, "file_id": file_id}})

    async def ensure_assistant(self, user_id: int, profile_name: str) -> str:
        asst_id = self.store.get_assistant_id(user_id)
        if asst_id:
            return asst_id

        logger.info("Creating assistant", extra={"context": {"user_id": user_id, "profile_name": profile_name}})
        assistant = await self.client.create_assistant(assistant_name(profile_name), self.instructions, self.model)
        self.store.save_assistant(assistant.id, assistant.name, user_id)
        return assistant.id

    async def ensure_vector_store(self, asst_id: str, profile_name: str) -> str:
        store_id = self.store.get_store_id(asst_id)
        if store_id:
            return store_id

        name = vector_store_name(profile_name)
        store_id = await self._find_remote_store(name)
        if store_id is None:
            logger.info("Creating vector store", extra={"context": {"store_name": name}})
            store_id = (await self.client.create_vector_store(name)).id

        self.store.save_store(store_id, name, asst_id)
        await self.client.attach_vector_store(asst_id, store_id)
        return store_id

    async def _find_remote_store(self, name: str) -> Optional[str]:
        # A previous upload may have created the store but failed before saving it
        for remote in await self.client.list_vector_stores():
            if remote.name == name:
                logger.info("Reusing existing vector store", extra={"context": {"store_id": remote.id, "store_name": name}})
                return remote.id
        return None
