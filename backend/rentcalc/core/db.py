from sqlmodel import create_engine

from rentcalc.core.config import settings

# Create database engine
engine = create_engine(str(settings.SQLALCHEMY_DATABASE_URI))

# make sure all SQLModel models are imported (rentcalc.models) before initializing DB
# otherwise, SQLModel might fail to initialize relationships properly
from rentcalc.models import AppUser  # noqa: F401, E402
