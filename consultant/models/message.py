from sqlalchemy import BigInteger, Column, Index, Integer, Text

from consultant.database import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    chat_id = Column(Text, nullable=False)
    user_id = Column(BigInteger, nullable=False)
    content = Column(Text, nullable=False)
    role = Column(Text, nullable=False)  # user, assistant
    created_at = Column(BigInteger, nullable=False)  # epoch seconds from Avito

    __table_args__ = (Index("idx_messages_chat_created", "chat_id", "created_at"),)
