"""Built-in name categories and the name matching rules shared by all stages."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

_HTTP_VERBS = ("get", "post", "put", "patch", "delete", "head", "options", "request")

_BLOCKING_HTTP = frozenset(
    [f"requests.{verb}" for verb in _HTTP_VERBS]
    + [f"httpx.{verb}" for verb in _HTTP_VERBS]
    + [
        "urllib.request.urlopen",
        "urllib3.request",
        "http.client.HTTPConnection",
        "http.client.HTTPSConnection",
    ]
)

_BLOCKING_SLEEP = frozenset({"time.sleep"})

_BLOCKING_SUBPROCESS = frozenset(
    {
        "subprocess.run",
        "subprocess.call",
        "subprocess.check_call",
        "subprocess.check_output",
        "os.system",
    }
)

BUILTIN_CATEGORIES: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        "blocking_http": _BLOCKING_HTTP,
        "blocking_sleep": _BLOCKING_SLEEP,
        "blocking_subprocess": _BLOCKING_SUBPROCESS,
        "blocking_call": _BLOCKING_HTTP | _BLOCKING_SLEEP | _BLOCKING_SUBPROCESS,
        "async_framework_import": frozenset(
            {"fastapi", "starlette", "aiohttp", "sanic", "quart", "litestar", "tornado"}
        ),
        "interactive_app_import": frozenset({"streamlit", "gradio", "dash", "panel"}),
        "retrieval_pipeline_import": frozenset(
            {
                "langchain",
                "langchain_community",
                "langchain_core",
                "llama_index",
                "haystack",
                "chromadb",
                "faiss",
                "qdrant_client",
                "pinecone",
                "sentence_transformers",
            }
        ),
        "embedding_call": frozenset(
            {"embed_query", "embed_documents", "encode", "embeddings.create", "get_text_embedding"}
        ),
        "vector_store_call": frozenset(
            {"similarity_search", "add_documents", "add_texts", "upsert", "query", "as_retriever"}
        ),
    }
)


def merge_categories(
    base: Mapping[str, Iterable[str]],
    extra: Mapping[str, Iterable[str]] | None,
) -> Mapping[str, frozenset[str]]:
    """Return ``base`` extended by ``extra``; entries for existing names are unioned."""

    merged: dict[str, frozenset[str]] = {name: frozenset(members) for name, members in base.items()}
    for name, members in (extra or {}).items():
        merged[name] = merged.get(name, frozenset()) | frozenset(members)
    return MappingProxyType(merged)


def name_matches(pattern: str, value: str) -> bool:
    """Return ``True`` when ``pattern`` names ``value`` exactly or as a dotted suffix."""

    if not value:
        return False
    if pattern == "*" or pattern == value:
        return True
    return value.endswith("." + pattern)


def module_matches(pattern: str, module: str) -> bool:
    """Return ``True`` when ``module`` is ``pattern`` or one of its sub-modules."""

    if not module:
        return False
    return pattern == "*" or module == pattern or module.startswith(pattern + ".")


def expand(pattern: str, categories: Mapping[str, frozenset[str]]) -> frozenset[str]:
    """Expand a category name into its members; any other pattern stands for itself."""

    members = categories.get(pattern)
    if members is None:
        return frozenset({pattern})
    return members


def matches_any(
    pattern: str,
    candidates: Iterable[str],
    categories: Mapping[str, frozenset[str]],
    *,
    modules: bool = False,
) -> bool:
    """Return ``True`` when any candidate is named by ``pattern`` or its category."""

    check = module_matches if modules else name_matches
    names = [candidate for candidate in candidates if candidate]
    return any(check(member, candidate) for member in expand(pattern, categories) for candidate in names)


__all__ = [
    "BUILTIN_CATEGORIES",
    "expand",
    "matches_any",
    "merge_categories",
    "module_matches",
    "name_matches",
]
