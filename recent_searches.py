import json
import logging
import os

from config import RECENT_SEARCHES_PATH

MAX_RECENT_SEARCHES = 5


class RecentSearches:
    """Most recent search terms, newest first, kept in a small JSON file.

    Storage problems never interrupt searching: a missing or corrupt file
    reads as empty and a failed write only keeps the list in memory.
    """

    def __init__(self, path=RECENT_SEARCHES_PATH, max_items=MAX_RECENT_SEARCHES):
        self.path = path
        self.max_items = max_items
        self.searches = self._load()

    def _load(self):
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                saved = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logging.debug(f"Ignoring unreadable recent searches file {self.path}: {e}")
            return []
        if not isinstance(saved, list):
            return []
        return [s for s in saved if isinstance(s, str)][:self.max_items]

    def _save(self):
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(self.searches, f)
        except OSError as e:
            logging.debug(f"Could not persist recent searches to {self.path}: {e}")

    def add(self, query):
        if not query or not query.strip():
            return self.searches
        remaining = [s for s in self.searches if s.lower() != query.lower()]
        self.searches = [query] + remaining[:self.max_items - 1]
        self._save()
        return self.searches

    def clear(self):
        self.searches = []
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logging.debug(f"Could not remove recent searches file {self.path}: {e}")
