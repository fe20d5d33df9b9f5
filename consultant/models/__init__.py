from consultant.models.assistant import Assistant
from consultant.models.file import File
from consultant.models.message import Message
from consultant.models.profile import Profile
from consultant.models.thread import Thread
from consultant.models.vector_store import VectorStore

__all__ = [
    "Assistant",
    "File",
    "Message",
    "Profile",
    "Thread",
    "VectorStore",
]
