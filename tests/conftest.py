import io
import zipfile

import pytest
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401
from database import Base, make_engine
from core.game_manager import GameManager
from core.round_manager import RoundManager
from core.turn_manager import TurnManager


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def game(db):
    return GameManager.create_game(db, name="demo", players=["alice", "bob"])


@pytest.fixture
def round_obj(db, game):
    return RoundManager.create_round(db, game.id, "class-1")


@pytest.fixture
def turn(db, round_obj):
    return TurnManager.create_turns(db, round_obj.id, ["alice"])[0]


@pytest.fixture
def make_zip():
    def _make_zip(files=None) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            for name, content in (files or {}).items():
                archive.writestr(name, content)
        return buffer.getvalue()

    return _make_zip
