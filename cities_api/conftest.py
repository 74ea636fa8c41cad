import json

import pytest
from fastapi.testclient import TestClient

from cities_api.config import Settings
from cities_api.main import create_app

TOKEN = "test-token"


@pytest.fixture
def cities():
    return [
        {
            "guid": "london",
            "name": "London",
            "latitude": 51.5074,
            "longitude": -0.1278,
            "tags": ["capital", "river"],
            "isActive": True,
            "address": "Westminster, London",
        },
        {
            "guid": "paris",
            "name": "Paris",
            "latitude": 48.8566,
            "longitude": 2.3522,
            "tags": ["capital", "river"],
            "isActive": True,
            "address": "Île-de-France",
        },
        {
            "guid": "brighton",
            "name": "Brighton",
            "latitude": 50.8225,
            "longitude": -0.1372,
            "tags": ["coastal"],
            "isActive": True,
        },
        {
            "guid": "dover",
            "name": "Dover",
            "latitude": 51.1279,
            "longitude": 1.3134,
            "tags": ["coastal", "port"],
            "isActive": False,
        },
        {
            "guid": "calais",
            "name": "Calais",
            "latitude": 50.9513,
            "longitude": 1.8587,
            "tags": ["port", "coastal"],
            "isActive": True,
        },
        {
            "guid": "sydney",
            "name": "Sydney",
            "latitude": -33.8688,
            "longitude": 151.2093,
            "tags": ["harbour"],
            "isActive": True,
        },
    ]


@pytest.fixture
def data_file(tmp_path, cities):
    path = tmp_path / "addresses.json"
    path.write_text(json.dumps(cities, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def settings(data_file):
    return Settings(auth_token=TOKEN, data_path=data_file, store_chunk_size=97)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app, headers={"Authorization": f"Bearer {TOKEN}"}) as client:
        yield client


@pytest.fixture
def anon_client(app):
    with TestClient(app) as client:
        yield client
