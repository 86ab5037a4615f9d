"""Plaintext journal export.

A manual backup of the journal that is NOT encrypted. Every export emits a
``PlaintextExportWarning`` and a log warning so callers can surface it to the
user; the document itself carries an ``"encrypted": false`` marker.
For an encrypted backup, export the vault artifact instead.
"""
import logging
import warnings
from typing import Any, Union

import orjson

from .journal import JournalState
from .version import __title__, __version__

logger = logging.getLogger("hera.journal")

PLAINTEXT_WARNING = (
    "This export is NOT encrypted. Anyone with access to the file can read "
    "the whole journal."
)


class PlaintextExportWarning(UserWarning):
    """Raised as a warning whenever unencrypted journal data leaves the vault."""


def export_plaintext(state: JournalState) -> bytes:
    """Serialize a journal to an unencrypted JSON document.

    Args:
        state: Journal to export.

    Returns:
        orjson-encoded bytes.
    """
    warnings.warn(PLAINTEXT_WARNING, PlaintextExportWarning, stacklevel=2)
    logger.warning(
        "Plaintext journal export requested (%d entries)", len(state.cycle_entries),
    )
    document = {
        "encrypted": False,
        "warning": PLAINTEXT_WARNING,
        "generator": f"{__title__}/{__version__}",
        "journal": state.to_document(),
    }
    return orjson.dumps(document, option=orjson.OPT_INDENT_2)


def import_plaintext(data: Union[str, bytes]) -> JournalState:
    """Parse a plaintext export back into a journal.

    Accepts documents written by ``export_plaintext`` and the bare journal
    backups (``{"profile": ..., "cycleData": [...]}``) of the browser app.

    Raises:
        ValueError: If the document is not a plaintext journal export.
    """
    try:
        document: Any = orjson.loads(data)
    except orjson.JSONDecodeError as err:
        raise ValueError("Plaintext export is not valid JSON") from err
    if not isinstance(document, dict):
        raise ValueError("Document is not a plaintext journal export")
    if "encrypted" not in document and "cycleData" in document:
        return JournalState.model_validate(document)
    if document.get("encrypted") is not False:
        raise ValueError("Document is not a plaintext journal export")
    if "journal" not in document:
        raise ValueError("Plaintext export has no journal")
    return JournalState.model_validate(document["journal"])
