from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="child")
    avatar = relationship(
        "Avatar", back_populates="user", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True
    )
    test_results = relationship(
        "TestProgress", back_populates="user",
        cascade="all, delete-orphan", passive_deletes=True
    )


class Avatar(Base):
    __tablename__ = "avatars"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False, default="blue")
    accessory = Column(String, nullable=False, default="none")
    level = Column(Integer, nullable=False, default=1)
    total_experience = Column(Integer, nullable=False, default=0)
    user = relationship("User", back_populates="avatar")


class TestProgress(Base):
    __tablename__ = "test_progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    test_timestamp = Column(DateTime, nullable=False)
    cmas_score = Column(Integer, nullable=False)
    user = relationship("User", back_populates="test_results")
