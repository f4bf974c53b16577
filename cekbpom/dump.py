from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Optional, Sequence

from .types import ResultEnvelope, SearchField


logger = logging.getLogger(__name__)

UNSAFE_RE = re.compile(r"[^A-Za-z_0-9-]+")


def encode_for_filename(value: str) -> str:
    return UNSAFE_RE.sub("-", value)


def _iso8601(epoch: float, time_sep: str = ":") -> str:
    dt = datetime.fromtimestamp(epoch, tz=timezone.utc)
    return dt.strftime(f"%Y-%m-%dT%H{time_sep}%M{time_sep}%SZ")


def _field_names(fields: Sequence[SearchField]) -> str:
    return ",".join(f.value for f in fields)


def _clean_log_value(value) -> str:
    text = str(value)
    text = re.sub(r"\r\n|\r|\n", " ", text)
    return text.replace("\t", "    ")


def format_query_log_line(
    envelope: ResultEnvelope,
    queries: Sequence[str],
    fields: Sequence[SearchField],
    enrich: bool = False,
    note: Optional[str] = None,
    version: str = "dev",
) -> str:
    timing = envelope.timing
    started_at = timing.started_at if timing else 0.0
    entries = {
        "what": "products",
        "time": _iso8601(started_at),
        "queries": ",".join(queries),
        "search_types": _field_names(fields),
        "opt_get_product_detail": 1 if enrich else 0,
        "num_results": len(envelope.data),
        "duration": "%0.3f" % (timing.query_duration if timing else 0.0),
        "cek_bpom_version": version,
    }
    if note is not None:
        entries["note"] = note
    return "\t".join(f"{key}:{_clean_log_value(entries[key])}" for key in sorted(entries))


def append_query_log(
    path: str,
    envelope: ResultEnvelope,
    queries: Sequence[str],
    fields: Sequence[SearchField],
    enrich: bool = False,
    note: Optional[str] = None,
    version: str = "dev",
) -> bool:
    """Append one TSV line describing the run. Returns False if writing failed."""
    line = format_query_log_line(envelope, queries, fields, enrich=enrich, note=note, version=version)
    logger.debug("Logging query: %s", line)
    try:
        with open(path, "a", encoding="utf-8") as fh:
            fh.write(line + "\n")
    except OSError as exc:
        logger.error("Can't write query log file '%s': %s, skipped logging query", path, exc)
        return False
    return True


def result_dump_filename(
    envelope: ResultEnvelope,
    queries: Sequence[str],
    fields: Sequence[SearchField],
    note: Optional[str] = None,
) -> str:
    started_at = envelope.timing.started_at if envelope.timing else 0.0
    return "cek-bpom-products-result.%s.%s.%s%s.json" % (
        _iso8601(started_at, time_sep="_"),
        encode_for_filename(_field_names(fields)),
        encode_for_filename(",".join(queries)),
        "." + encode_for_filename(note) if note is not None else "",
    )


def dump_result(
    directory: str,
    envelope: ResultEnvelope,
    queries: Sequence[str],
    fields: Sequence[SearchField],
    note: Optional[str] = None,
) -> Optional[str]:
    """Write the enveloped result as JSON into ``directory``. Returns the path written."""
    if not os.path.isdir(directory):
        logger.error("Result dump dir '%s' does not exist or not a dir, skipped dumping result", directory)
        return None
    path = os.path.join(directory, result_dump_filename(envelope, queries, fields, note=note))
    logger.debug("Dumping result to %s ...", path)
    try:
        with open(path, "w", encoding="utf-8") as fh:
            # one row per line keeps the dump greppable
            fh.write("[%d, %s, [\n" % (envelope.status, json.dumps(envelope.message, ensure_ascii=False)))
            rows = [json.dumps(row.to_dict(), ensure_ascii=False) for row in envelope.data]
            fh.write(",\n".join(rows))
            fh.write("\n], %s]\n" % json.dumps(dict(envelope.metadata), ensure_ascii=False))
    except OSError as exc:
        logger.error("Can't write '%s': %s, skipped dumping result", path, exc)
        return None
    return path
