# calculator_server/models/__init__.py

from sqlalchemy.orm import declarative_base


Base = declarative_base()

# Register tables on Base.metadata
from .user import User  # noqa: E402,F401
from .calculation import Calculation  # noqa: E402,F401
