from sqlalchemy import Column, String, Integer, DateTime, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class URLItem(Base):
    __tablename__ = "urls"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Uniqueness is enforced here, so concurrent inserts of the same code fail
    short_code = Column(String(6), unique=True, index=True, nullable=False)

    # Hex of IV || AES-CTR ciphertext
    encrypted_url = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
    access_count = Column(Integer, nullable=False, default=0, server_default="0")
