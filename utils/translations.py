#!/usr/bin/env python3
"""
Community translation collection.

Lists the JSON files under ``translations/`` in the translation repository,
downloads them on a bounded thread pool and folds them into one
original-text -> translated-text mapping.

File shapes:
- translations/localify/ui.json: flat {original: translated}
- translations/mdb/*.json: {"text": {original: translated}}
- everything else: {"text": [{"jpText": ..., "enText": ...}, ...]}

Usage:
    pairs = collect_translations('noccu/umamusu-translate', 'master')
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests

from utils.github import fetch_json, get_repo_tree

logger = logging.getLogger(__name__)

TRANSLATIONS_DIR = "translations/"
UI_PATH = "translations/localify/ui.json"
MDB_DIR = "translations/mdb/"

Pair = Tuple[str, str]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def translation_paths(tree: Iterable[Dict[str, Any]]) -> List[str]:
    """JSON blobs under translations/, sorted"""
    return sorted(
        entry['path'] for entry in tree
        if entry.get('type', 'blob') == 'blob'
        and entry.get('path', '').startswith(TRANSLATIONS_DIR)
        and entry['path'].endswith('.json')
    )


def parse_translation_file(path: str, document: Any) -> List[Pair]:
    """Extract (original, translated) pairs from one decoded file"""
    if path == UI_PATH:
        if not isinstance(document, dict):
            raise ValueError(f"{path}: expected an object")
        return [(key, _as_text(value)) for key, value in document.items()]

    if not isinstance(document, dict) or 'text' not in document:
        raise ValueError(f"{path}: missing 'text'")
    text = document['text']

    if path.startswith(MDB_DIR):
        if not isinstance(text, dict):
            raise ValueError(f"{path}: 'text' is not an object")
        return [(key, _as_text(value)) for key, value in text.items()]

    if not isinstance(text, list):
        raise ValueError(f"{path}: 'text' is not an array")
    pairs = []
    for entry in text:
        if not isinstance(entry, dict):
            continue
        original = _as_text(entry.get('jpText'))
        if not original:
            continue
        pairs.append((original, _as_text(entry.get('enText'))))
    return pairs


def merge_translations(parsed: Iterable[List[Pair]]) -> Dict[str, str]:
    """First occurrence of an original text wins"""
    merged: Dict[str, str] = {}
    for pairs in parsed:
        for original, translated in pairs:
            merged.setdefault(original, translated)
    return merged


def _download_pairs(repo: str, branch: str, path: str,
                    session: Optional[requests.Session], timeout: float) -> List[Pair]:
    try:
        document = fetch_json(repo, branch, path, session=session, timeout=timeout)
        return parse_translation_file(path, document)
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Skipping translation file {path}: {e}")
        return []


def collect_translations(repo: str, branch: str, concurrency: int = 200, timeout: float = 60,
                         session: Optional[requests.Session] = None) -> Dict[str, str]:
    """Download every translation file and merge them in path order"""
    paths = translation_paths(get_repo_tree(repo, branch, session=session, timeout=timeout))
    logger.info(f"Downloading {len(paths)} translation files from {repo}/{branch}")

    results: Dict[str, List[Pair]] = {}
    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        futures = {pool.submit(_download_pairs, repo, branch, path, session, timeout): path
                   for path in paths}
        for done, future in enumerate(as_completed(futures), start=1):
            results[futures[future]] = future.result()
            if done % concurrency == 0:
                logger.info(f"Downloaded {done}/{len(paths)} translation files")

    merged = merge_translations(results[path] for path in sorted(results))
    logger.info(f"Finished downloading translation files: {len(merged)} unique texts")
    return merged
