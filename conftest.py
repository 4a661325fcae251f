"""Shared pytest fixtures: content directories and wired components."""
import json
import os

import pytest

from modguide.content.loader import ContentLoader
from modguide.rag.embedder import MockEmbedder
from modguide.rag.retriever import Retriever
from modguide.rag.vector_store import VectorStore


ADK_PENALTY = {
    "id": "penalty-001",
    "code": "ADK-001",
    "name": "ADK İhlali",
    "category": "yazili",
    "duration": "7 gün",
    "description": "ADK (Aşırı Duygu Kontrolü) ihlali yapan üyeye 7 gün mute cezası verilir.",
    "conditions": ["ADK ihlali ilk kez yapıldıysa"],
    "examples": ["Sohbette sürekli bağırarak ADK ihlali yapmak"],
    "keywords": ["adk", "ceza", "mute"],
    "order": 1,
}

REKLAM_PENALTY = {
    "id": "penalty-002",
    "code": "REK-001",
    "name": "Reklam",
    "category": "yazili",
    "duration": "14 gün",
    "description": "Sunucuda izinsiz davet linki veya reklam paylaşan üyeye 14 gün mute verilir.",
    "examples": ["Özel mesajdan sunucu daveti göndermek"],
    "keywords": ["reklam", "davet"],
    "order": 2,
}

VOICE_GUIDE = {
    "id": "guide-001",
    "title": "Sesli Odalar",
    "slug": "sesli-odalar",
    "category": "kurallar",
    "content": (
        "Sesli odalarda mikrofona bağırmak yasaktır. Odası dolu olan üyeler "
        "bekleme sırasına alınır ve yetkililer tarafsız kalır."
    ),
    "keywords": ["sesli", "oda"],
    "order": 1,
}


def write_index(content_dir, folder, items, list_key="items"):
    path = os.path.join(str(content_dir), folder)
    os.makedirs(path, exist_ok=True)
    with open(os.path.join(path, "index.json"), "w", encoding="utf-8") as f:
        json.dump({list_key: items, "version": "test"}, f, ensure_ascii=False)


@pytest.fixture
def index_writer():
    return write_index


@pytest.fixture
def adk_corpus_dir(tmp_path):
    """Small corpus: the ADK-001 rule, a competing penalty and an unrelated guide."""
    write_index(tmp_path, "guide", [VOICE_GUIDE])
    write_index(tmp_path, "penalties", [ADK_PENALTY, REKLAM_PENALTY])
    write_index(tmp_path, "commands", [])
    write_index(tmp_path, "procedures", [])
    return tmp_path


@pytest.fixture
def adk_loader(adk_corpus_dir):
    return ContentLoader(str(adk_corpus_dir))


@pytest.fixture
def bundled_loader():
    """Loader over the sample corpus shipped with the package."""
    return ContentLoader()


@pytest.fixture
def mock_embedder():
    return MockEmbedder()


@pytest.fixture
def adk_store(adk_loader, mock_embedder):
    return VectorStore(adk_loader, mock_embedder)


@pytest.fixture
def bundled_store(bundled_loader, mock_embedder):
    return VectorStore(bundled_loader, mock_embedder)


@pytest.fixture
def adk_retriever(adk_store):
    return Retriever(adk_store)
