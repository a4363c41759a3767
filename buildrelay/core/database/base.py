# File: buildrelay/core/database/base.py

from sqlalchemy.orm import declarative_base

# The shared registry. Every persisted model (dispatch history, ...) inherits from this.
Base = declarative_base()
