from sqlalchemy import BigInteger, Column, Integer, Text

from consultant.database import Base


class Assistant(Base):
    __tablename__ = "assistants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    asst_id = Column(Text, nullable=False, unique=True)
    asst_name = Column(Text, nullable=False)
    user_id = Column(BigInteger, nullable=False, unique=True)
