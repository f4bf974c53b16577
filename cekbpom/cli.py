from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence

import requests

from . import __version__
from .config import Settings
from .crawler import SearchOrchestrator, resolve_fields
from .dump import append_query_log, dump_result
from .excel_writer import write_rows_to_excel
from .types import FIELD_ALIASES, FIELD_ORDER, SearchField, ResultEnvelope


MESSAGES = {
    "id": {
        "stage_search": "[1/2] Mencari {queries} (jenis pencarian: {fields})…",
        "stage_save": "[2/2] Menyimpan hasil…",
        "found": "Ditemukan {count} produk dalam {duration:.3f} detik",
        "no_results": "{hint}",
        "file": "File: {path}",
        "error": "Pencarian gagal ({status}): {message}",
        "interrupted": "Dihentikan oleh pengguna",
        "help_desc": "Cari produk terdaftar BPOM melalui https://cekbpom.pom.go.id/",
        "help_queries": "Kata kunci pencarian (boleh lebih dari satu)",
        "help_type": "Kolom yang dicari (boleh diulang). Bawaan: nama_produk dan merk",
        "help_shortcut": "Singkatan untuk --search-type={name}",
        "help_detail": "Ambil detail tiap produk (produsen). Satu permintaan HTTP per produk",
        "help_note": "Catatan untuk log kueri dan nama file dump",
        "help_log": "Catat setiap pencarian ke file ini (format TSV)",
        "help_dump": "Simpan hasil lengkap (JSON) ke direktori ini",
        "help_out": "Simpan hasil ke file Excel",
        "help_template": "Path ke template Excel (opsional)",
        "help_format": "Format keluaran: text atau json",
        "help_strict": "Gagalkan pencarian jika ada baris hasil yang tidak terbaca",
        "help_delay": "Jeda sebelum tiap permintaan (detik)",
        "help_timeout": "Batas waktu tiap permintaan (detik)",
        "help_ua": "Ganti User-Agent",
        "help_retries": "Jumlah pengulangan saat terjadi galat HTTP",
        "help_lang": "Bahasa pesan: id atau en (bawaan id)",
        "help_trace": "Tampilkan detail tiap permintaan",
        "help_quiet": "Hanya tampilkan galat",
    },
    "en": {
        "stage_search": "[1/2] Searching {queries} (search types: {fields})…",
        "stage_save": "[2/2] Saving results…",
        "found": "Found {count} product(s) in {duration:.3f}s",
        "no_results": "{hint}",
        "file": "File: {path}",
        "error": "Search failed ({status}): {message}",
        "interrupted": "Interrupted by user",
        "help_desc": "Search BPOM registered products via https://cekbpom.pom.go.id/",
        "help_queries": "Search keywords (one or more)",
        "help_type": "Field to search against (repeatable). Default: nama_produk and merk",
        "help_shortcut": "Shortcut for --search-type={name}",
        "help_detail": "Fetch the detail (manufacturer) of each product. One HTTP request per product",
        "help_note": "Note added to the query log and the dump file name",
        "help_log": "Log each invocation to this file (TSV)",
        "help_dump": "Dump the full enveloped result (JSON) into this directory",
        "help_out": "Save results to an Excel file",
        "help_template": "Path to Excel template (optional)",
        "help_format": "Output format: text or json",
        "help_strict": "Fail when some result rows cannot be parsed",
        "help_delay": "Delay before each request (sec)",
        "help_timeout": "Per-request timeout (sec)",
        "help_ua": "Override User-Agent",
        "help_retries": "Retry count for HTTP errors",
        "help_lang": "Messages language: id or en (default id)",
        "help_trace": "Show details of each request",
        "help_quiet": "Only show errors",
    },
}

SHORTCUTS = {
    SearchField.PRODUCT_NAME: "-p",
    SearchField.BRAND: "-m",
    SearchField.REGISTRANT_NAME: "-P",
}


def _msg(lang: str, key: str, **kwargs) -> str:
    lang_key = lang if lang in MESSAGES else "id"
    template = MESSAGES[lang_key].get(key, "")
    return template.format(**kwargs)


def search_products(
    queries: Sequence[str],
    search_types: Optional[Sequence[str]] = None,
    get_product_detail: bool = False,
    note: Optional[str] = None,
    query_log_file: Optional[str] = None,
    result_dump_dir: Optional[str] = None,
    out_path: Optional[str] = None,
    template_path: Optional[str] = None,
    settings: Optional[Settings] = None,
    http: Optional[requests.Session] = None,
    lang: str = "id",
) -> ResultEnvelope:
    """High-level convenience function: run a search and hand the result to the writers.

    Returns the result envelope. The query log, dump and Excel file are only
    written for successful runs.
    """
    settings = settings or Settings.from_env()
    orchestrator = SearchOrchestrator(settings=settings, http=http)

    print(
        _msg(lang, "stage_search", queries=", ".join(queries or []), fields=", ".join(search_types or ["nama_produk", "merk"])),
        file=sys.stderr,
        flush=True,
    )
    envelope = orchestrator.run(fields=search_types, queries=queries, enrich=get_product_detail)
    if not envelope.ok:
        return envelope

    duration = envelope.timing.duration if envelope.timing else 0.0
    print(_msg(lang, "found", count=len(envelope.data), duration=duration), file=sys.stderr, flush=True)

    fields = resolve_fields(search_types)
    if query_log_file or result_dump_dir or out_path:
        print(_msg(lang, "stage_save"), file=sys.stderr, flush=True)
    if query_log_file:
        append_query_log(
            query_log_file, envelope, queries, fields,
            enrich=get_product_detail, note=note, version=__version__,
        )
    if result_dump_dir:
        path = dump_result(result_dump_dir, envelope, queries, fields, note=note)
        if path:
            print(_msg(lang, "file", path=path), file=sys.stderr, flush=True)
    if out_path:
        write_rows_to_excel(envelope.data, out_path=out_path, template_path=template_path)
        print(_msg(lang, "file", path=out_path), file=sys.stderr, flush=True)
    return envelope


def _print_text(envelope: ResultEnvelope, lang: str) -> None:
    if not envelope.data:
        hint = envelope.metadata.get("no_results_hint")
        if hint:
            print(_msg(lang, "no_results", hint=hint))
        return
    print("\t".join(FIELD_ORDER))
    for row in envelope.data:
        values = row.to_dict()
        print("\t".join("" if values[name] is None else str(values[name]) for name in FIELD_ORDER))


def _build_arg_parser(lang: str = "id") -> argparse.ArgumentParser:
    loc = MESSAGES.get(lang, MESSAGES["id"])
    p = argparse.ArgumentParser(
        prog="cek-bpom-products",
        description=loc["help_desc"],
    )
    p.add_argument("queries", nargs="+", help=loc["help_queries"])
    p.add_argument(
        "-t",
        "--search-type",
        dest="search_types",
        action="append",
        choices=sorted(FIELD_ALIASES) + sorted(f.value for f in SearchField),
        default=None,
        help=loc["help_type"],
    )
    for alias, search_field in sorted(FIELD_ALIASES.items()):
        flags = ["--" + alias.replace("_", "-")]
        if search_field in SHORTCUTS:
            flags.insert(0, SHORTCUTS[search_field])
        p.add_argument(
            *flags,
            dest="search_types",
            action="append_const",
            const=alias,
            help=loc["help_shortcut"].format(name=alias),
        )
    p.add_argument("--get-product-detail", dest="get_product_detail", action="store_true", help=loc["help_detail"])
    p.add_argument("--note", dest="note", default=None, help=loc["help_note"])
    p.add_argument("--query-log-file", dest="query_log_file", default=None, help=loc["help_log"])
    p.add_argument("--result-dump-dir", dest="result_dump_dir", default=None, help=loc["help_dump"])
    p.add_argument("-o", "--out", dest="out_path", default=None, help=loc["help_out"])
    p.add_argument("--template", dest="template_path", default=None, help=loc["help_template"])
    p.add_argument("--format", dest="format", choices=["text", "json"], default="text", help=loc["help_format"])
    p.add_argument("--strict-count", dest="strict_count", action="store_true", default=None, help=loc["help_strict"])
    p.add_argument("-d", "--delay", dest="delay", type=float, default=None, help=loc["help_delay"])
    p.add_argument("--timeout", dest="timeout", type=float, default=None, help=loc["help_timeout"])
    p.add_argument("-H", "--user-agent", dest="user_agent", default=None, help=loc["help_ua"])
    p.add_argument("-r", "--retries", dest="retries", type=int, default=None, help=loc["help_retries"])
    p.add_argument("--lang", dest="lang", choices=["id", "en"], default=lang, help=loc["help_lang"])
    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument("--trace", dest="trace", action="store_true", help=loc["help_trace"])
    verbosity.add_argument("--quiet", dest="quiet", action="store_true", help=loc["help_quiet"])
    return p


def _configure_logging(trace: bool, quiet: bool) -> None:
    level = logging.DEBUG if trace else logging.ERROR if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_arg_parser("id")
    args = parser.parse_args(argv)
    lang = args.lang
    _configure_logging(args.trace, args.quiet)

    settings = Settings.from_env().override(
        user_agent=args.user_agent,
        retries=args.retries,
        timeout=args.timeout,
        delay=args.delay,
        strict_count=args.strict_count,
    )
    try:
        envelope = search_products(
            queries=args.queries,
            search_types=args.search_types,
            get_product_detail=args.get_product_detail,
            note=args.note,
            query_log_file=args.query_log_file,
            result_dump_dir=args.result_dump_dir,
            out_path=args.out_path,
            template_path=args.template_path,
            settings=settings,
            lang=lang,
        )
    except KeyboardInterrupt:
        print(_msg(lang, "interrupted"), file=sys.stderr)
        return 130

    if not envelope.ok:
        print(_msg(lang, "error", status=envelope.status, message=envelope.message), file=sys.stderr)
        return 1
    if args.format == "json":
        print(json.dumps(envelope.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_text(envelope, lang)
    return 0
