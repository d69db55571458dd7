# backend/blog/categories/models.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(150), unique=True, nullable=False, index=True)
    description = Column(Text)
    color = Column(String(20))
    icon = Column(String(100))
    parent_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), index=True)
    # 영문 번역
    name_en = Column(String(100))
    description_en = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent")
    posts = relationship("Post", back_populates="category")

    def __repr__(self) -> str:
        return f"Category(id={self.id}, slug={self.slug!r})"
    def __str__(self) -> str:
        return self.name
