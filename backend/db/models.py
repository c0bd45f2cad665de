import uuid

from sqlalchemy import Column, Integer, BigInteger, String, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from db.database import Base
from db.timezone_fix import TZDateTime

def generate_uuid():
    return str(uuid.uuid4())

class User(Base):
    __tablename__ = "users"

    uuid = Column(String(36), primary_key=True, default=generate_uuid)
    id_number = Column(String, nullable=False)  # "<ciphertext>$<key>"
    identifier = Column(String, index=True, nullable=True)  # sha256 of the plaintext id-number
    name = Column(String, nullable=False)
    password = Column(String, nullable=False)
    school = Column(String)
    major = Column(String)
    main_subject = Column(Integer, default=1)
    last_login = Column(TZDateTime)
    reg_date = Column(TZDateTime)

    # Relationships
    star_questions = relationship("StarQuestion", back_populates="owner")
    done_questions = relationship("DoneQuestion", back_populates="owner")
    user_setting = relationship("UserSetting", back_populates="owner", uselist=False)

class Question(Base):
    __tablename__ = "questions"

    pid = Column(String, primary_key=True)
    course = Column(String)
    subject = Column(Integer)
    type = Column(String)
    incorrect_count = Column(Integer, nullable=False, default=0)
    done_count = Column(Integer, nullable=False, default=0)

class StarQuestion(Base):
    __tablename__ = "star_questions"
    __table_args__ = (UniqueConstraint("user", "pid", name="uq_star_questions_user_pid"),)

    id = Column(Integer, primary_key=True, index=True)
    user = Column(String(36), ForeignKey("users.uuid"), nullable=False, index=True)
    pid = Column(String, ForeignKey("questions.pid"), nullable=False)
    course = Column(String)
    subject = Column(Integer)
    type = Column(String)
    stared_time = Column(BigInteger)  # epoch milliseconds
    folder = Column(String, default="wrong")

    owner = relationship("User", back_populates="star_questions")

class DoneQuestion(Base):
    __tablename__ = "done_questions"
    __table_args__ = (UniqueConstraint("user", "pid", name="uq_done_questions_user_pid"),)

    id = Column(Integer, primary_key=True, index=True)
    user = Column(String(36), ForeignKey("users.uuid"), nullable=False, index=True)
    pid = Column(String, ForeignKey("questions.pid"), nullable=False)
    course = Column(String)
    subject = Column(Integer)
    type = Column(String)
    done_time = Column(BigInteger)  # epoch milliseconds

    owner = relationship("User", back_populates="done_questions")

class UserSetting(Base):
    __tablename__ = "user_settings"

    user = Column(String(36), ForeignKey("users.uuid"), primary_key=True)
    setting = Column(JSON, nullable=False, default=dict)
    last_modified = Column(TZDateTime)

    owner = relationship("User", back_populates="user_setting")
