from sqlalchemy import Column, Integer, Text, UniqueConstraint

from consultant.database import Base


class File(Base):
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_id = Column(Text, nullable=False)
    file_name = Column(Text, nullable=False)
    file_type = Column(Text, nullable=False)  # instr, assrt
    store_id = Column(Text, nullable=False)

    # One active file per logical name and kind inside a store
    __table_args__ = (UniqueConstraint("store_id", "file_name", "file_type", name="uq_files_store_name_type"),)
