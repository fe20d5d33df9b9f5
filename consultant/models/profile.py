from sqlalchemy import BigInteger, Column, Integer, Text

from consultant.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_name = Column(Text, nullable=False, unique=True)
    user_id = Column(BigInteger, nullable=False)
