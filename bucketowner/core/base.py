# The Engine is the starting point for any SQLAlchemy application.
from sqlalchemy import create_engine
from sqlalchemy.engine.base import Engine

# Construct a base class for declarative class definitions.
from sqlalchemy.orm import declarative_base

# https://docs.sqlalchemy.org/en/20/orm/session_api.html#sqlalchemy.orm.sessionmaker
# The sessionmaker factory generates new Session objects when called.
from sqlalchemy.orm import sessionmaker

# A path to a SQLite database.
from bucketowner.settings import DATABASE_CONNECTION_PATH

engine: Engine = create_engine(DATABASE_CONNECTION_PATH)
Session: sessionmaker = sessionmaker(bind=engine)


Base = declarative_base()
