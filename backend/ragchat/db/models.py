from ragchat.chat.memory_models import ChatMessage, Conversation  # noqa: F401
from ragchat.rag.models import VectorChunk  # noqa: F401
