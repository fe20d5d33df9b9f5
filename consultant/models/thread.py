from sqlalchemy import Column, Integer, Text

from consultant.database import Base


class Thread(Base):
    __tablename__ = "threads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    chat_id = Column(Text, nullable=False, unique=True)
    thread_id = Column(Text, nullable=False)
    asst_id = Column(Text, nullable=False)
