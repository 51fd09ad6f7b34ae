import os
import sys
from pathlib import Path

# Every test runs against a private in-memory database; set before app.db builds its engine.
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite://'
os.environ.pop('JWT_SECRET', None)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.db import Base, build_engine
from app.models import Post, User


def make_token(user_id, username=None, secret='unused-dev-secret'):
    claims = {'sub': user_id}
    if username:
        claims['username'] = username
    return jwt.encode(claims, secret, algorithm='HS256')


def auth(user_id, username=None):
    return {'Authorization': f'Bearer {make_token(user_id, username or user_id)}'}


@pytest_asyncio.fixture
async def session():
    engine = build_engine('sqlite+aiosqlite://')
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as db:
        yield db
    await engine.dispose()


@pytest_asyncio.fixture
async def users(session):
    """alice, bob and carol profiles."""
    rows = [User(id=name, username=name) for name in ('alice', 'bob', 'carol')]
    session.add_all(rows)
    await session.commit()
    return {row.id: row for row in rows}


async def add_post(session, author_id, content='hello', created_at=None):
    post = Post(author_id=author_id, content=content)
    if created_at is not None:
        post.created_at = created_at
    session.add(post)
    await session.commit()
    return post


@pytest.fixture
def client():
    # Lifespan builds the schema; shutdown disposes the engine, which drops the in-memory database.
    from app.main import app
    with TestClient(app) as c:
        yield c
