import json
import logging

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from rdcli.config import RdcliConfig

API_URL = "https://api.raindrop.io/rest/v1"


def make_response(status=200, body=None, headers=None, url=f"{API_URL}/collections",
                  method="GET"):
    """Build a requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps(body).encode("utf-8") if body is not None else b""
    response._content_consumed = True
    response.headers = CaseInsensitiveDict(headers or {})
    response.url = url
    response.encoding = "utf-8"
    response.request = requests.Request(method, url).prepare()
    return response


@pytest.fixture
def config():
    """Configuration with a token and no artificial delay."""
    return RdcliConfig(token="test-token", timeout=30)


@pytest.fixture
def sleeps():
    """Records requested sleep durations instead of sleeping."""
    calls = []
    return calls


@pytest.fixture
def sample_raindrops():
    """Sample bookmark records as returned by the API."""
    return [
        {
            "_id": 101,
            "title": "Python Documentation",
            "link": "https://docs.python.org",
            "excerpt": "Official Python documentation",
            "note": "",
            "tags": ["python", "documentation"],
            "domain": "docs.python.org",
            "created": "2024-02-24",
            "collection": {"$id": 1},
        },
        {
            "_id": 102,
            "title": "GitHub",
            "link": "https://github.com",
            "excerpt": "",
            "note": "Code hosting\nand review",
            "tags": [],
            "domain": "github.com",
            "created": "2024-03-15",
            "collection": {"$id": 2},
        },
    ]


@pytest.fixture
def sample_collections():
    """Root and child collections with a parent hierarchy and one orphan."""
    roots = [
        {"_id": 1, "title": "Work", "count": 10},
        {"_id": 2, "title": "Personal", "count": 1},
    ]
    children = [
        {"_id": 11, "title": "Projects", "count": 4, "parent": {"$id": 1}},
        {"_id": 12, "title": "Meetings", "count": 2, "parent": {"$id": 1}},
        {"_id": 111, "title": "Archive", "count": 0, "parent": {"$id": 11}},
        {"_id": 99, "title": "Lost", "count": 3, "parent": {"$id": 404}},
    ]
    return roots, children


@pytest.fixture(autouse=True)
def reset_rdcli_logger():
    """Drop handlers installed by configure_logging so later tests log cleanly."""
    yield
    logger = logging.getLogger("rdcli")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
