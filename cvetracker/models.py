from sqlalchemy import Column, DateTime, Float, Integer, String, Text
from cvetracker.database import Base


class Vulnerability(Base):
    __tablename__ = "vulnerabilities"

    id = Column(String(32), primary_key=True)
    name = Column(String, nullable=False)
    severity = Column(Float, nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="Pending")
    date_logged = Column(DateTime(timezone=True), nullable=False, index=True)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    # Unique constraints close the check-then-insert race in registration
    username = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    registration_date = Column(DateTime(timezone=True), nullable=False)
