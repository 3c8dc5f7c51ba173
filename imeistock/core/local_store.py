"""
JSON document store used when INVENTORY_STORE = "local".

Each user owns one document holding their entries and reference lists.
A document that cannot be parsed is logged and treated as empty.
"""
import json
import logging
import os
import tempfile
from pathlib import Path

from django.conf import settings

logger = logging.getLogger('imeistock.core')

DOCUMENT_SECTIONS = ('entries', 'brands', 'models', 'sellers', 'booking_persons')


def empty_document():
    document = {section: [] for section in DOCUMENT_SECTIONS}
    document['next_id'] = 1
    return document


class LocalDocumentStore:
    def __init__(self, user, directory=None):
        self.user = user
        self.directory = Path(directory or settings.INVENTORY_LOCAL_STORE_DIR)

    @property
    def path(self):
        return self.directory / f"user_{self.user.pk}.json"

    def load(self):
        if not self.path.exists():
            return empty_document()
        try:
            with open(self.path, encoding='utf-8') as fh:
                document = json.load(fh)
        except (OSError, ValueError) as e:
            logger.error(f"Local store {self.path} is unreadable, starting empty: {e}")
            return empty_document()
        if not isinstance(document, dict):
            logger.error(f"Local store {self.path} does not hold a document, starting empty")
            return empty_document()

        base = empty_document()
        for section in DOCUMENT_SECTIONS:
            rows = document.get(section)
            base[section] = rows if isinstance(rows, list) else []
        base['next_id'] = document.get('next_id') or 1
        return base

    def save(self, document):
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(document, fh, indent=2, default=str)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    @staticmethod
    def allocate_id(document):
        next_id = int(document.get('next_id') or 1)
        document['next_id'] = next_id + 1
        return next_id
