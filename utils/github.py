#!/usr/bin/env python3
"""
GitHub helpers: raw file downloads and repository tree listings.

Failures are logged and reported through the return value; the caller
decides whether a missing file is fatal.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

RAW_URL = "https://raw.githubusercontent.com/{repo}/{branch}/{path}"
TREE_URL = "https://api.github.com/repos/{repo}/git/trees/{branch}?recursive=1"

# GitHub rejects requests without a user agent
HEADERS = {'User-Agent': 'uma-reload'}


def raw_file_url(repo: str, branch: str, path: str) -> str:
    """Raw content URL; '#' occurs in some file names and must be encoded"""
    return RAW_URL.format(repo=repo, branch=branch, path=path.replace('#', '%23'))


def _get(url: str, session: Optional[requests.Session], timeout: float) -> requests.Response:
    response = (session or requests).get(url, headers=HEADERS, timeout=timeout)
    response.raise_for_status()
    return response


def download_remote_file(repo: str, branch: str, source_path: str, destination_path,
                         session: Optional[requests.Session] = None, timeout: float = 60) -> bool:
    """
    Download one file from a repository to disk.

    Returns:
        True when the file was written
    """
    url = raw_file_url(repo, branch, source_path)
    logger.debug(f'Downloading "{source_path}" from "{repo}/{branch}"...')
    try:
        response = _get(url, session, timeout)
    except requests.RequestException as e:
        logger.error(f'Failed to download "{source_path}" from "{repo}/{branch}": {e}')
        return False

    destination = Path(destination_path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(response.content)
    logger.debug(f'Downloaded "{source_path}" to "{destination}"')
    return True


def fetch_json(repo: str, branch: str, path: str,
               session: Optional[requests.Session] = None, timeout: float = 60) -> Any:
    """Download and decode one JSON file; raises on HTTP or decode errors"""
    response = _get(raw_file_url(repo, branch, path), session, timeout)
    return response.json()


def get_repo_tree(repo: str, branch: str,
                  session: Optional[requests.Session] = None, timeout: float = 60) -> List[Dict[str, Any]]:
    """Every entry of the branch's recursive git tree, empty on failure"""
    url = TREE_URL.format(repo=repo, branch=branch)
    try:
        payload = _get(url, session, timeout).json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Failed to list {repo}/{branch}: {e}")
        return []

    if payload.get('truncated'):
        logger.warning(f"Tree listing of {repo}/{branch} was truncated by GitHub")
    return payload.get('tree', [])
