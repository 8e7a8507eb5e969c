"""FAQ corpus loading and validation."""

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .config import config
from .errors import MalformedCorpus
from .models import FAQEntry

logger = config.get_logger(__name__)


def parse_entries(items: Any) -> list[FAQEntry]:  # noqa: ANN401
    """Validate a sequence of ``{question, answer}`` items.

    Accepts mappings or ``FAQEntry`` instances.

    Returns:
        The entries in corpus order.

    Raises:
        MalformedCorpus: If the sequence is empty or any item is malformed.
    """
    if isinstance(items, (str, bytes)) or not isinstance(items, Sequence):
        msg = (
            "FAQ data is not in the correct format. "
            "Expected an array of questions and answers."
        )
        raise MalformedCorpus(msg)
    if not items:
        msg = "FAQ corpus is empty"
        raise MalformedCorpus(msg)

    entries: list[FAQEntry] = []
    for position, item in enumerate(items):
        if isinstance(item, FAQEntry):
            question, answer = item.question, item.answer
        elif isinstance(item, dict):
            question, answer = item.get("question"), item.get("answer")
        else:
            msg = f"FAQ item {position} is not an object"
            raise MalformedCorpus(msg)

        if not isinstance(question, str) or not question.strip():
            msg = f"FAQ item {position} has a missing or blank question"
            raise MalformedCorpus(msg)
        if not isinstance(answer, str) or not answer.strip():
            msg = f"FAQ item {position} has a missing or blank answer"
            raise MalformedCorpus(msg)
        entries.append(FAQEntry(question=question, answer=answer))
    return entries


def parse_corpus(data: Any) -> list[FAQEntry]:  # noqa: ANN401
    """Validate a decoded ``{"faqs": [...]}`` document.

    Returns:
        The FAQ entries in corpus order.

    Raises:
        MalformedCorpus: If the document does not have the expected shape.
    """
    if not isinstance(data, dict) or "faqs" not in data:
        msg = 'FAQ document must be an object with a "faqs" key'
        raise MalformedCorpus(msg)
    return parse_entries(data["faqs"])


class CorpusLoader:
    """Loads FAQ corpora from JSON files."""

    @staticmethod
    def load_corpus(file_path: Path) -> list[FAQEntry]:
        """Read and validate a corpus file.

        Args:
            file_path: Path to a JSON file shaped ``{"faqs": [{question, answer}]}``.

        Returns:
            The FAQ entries in file order.

        Raises:
            MalformedCorpus: If the file is not valid JSON or has the wrong shape.
        """
        try:
            with file_path.open(encoding="utf-8") as file:
                data = json.load(file)
        except json.JSONDecodeError as exc:
            msg = f"FAQ file {file_path} is not valid JSON: {exc}"
            raise MalformedCorpus(msg) from exc

        entries = parse_corpus(data)
        logger.info("Found %d FAQ items in %s", len(entries), file_path)
        return entries
