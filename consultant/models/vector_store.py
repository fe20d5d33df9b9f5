from sqlalchemy import Column, Integer, Text

from consultant.database import Base


class VectorStore(Base):
    __tablename__ = "v_stores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    store_id = Column(Text, nullable=False, unique=True)
    store_name = Column(Text, nullable=False)
    asst_id = Column(Text, nullable=False)
