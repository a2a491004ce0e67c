"""
逐行导入 JSONL 文件（每行一个已解析的商品行）。

    python -m scripts.import_rows products.jsonl [--no-update]

（确保 PYTHONPATH 包含 backend 目录）
每行处理完记录一次文件偏移和完成百分比。
"""
import argparse
import json
import sys

from product_importer.core.logging import configure_logging
from product_importer.db import create_all
from product_importer.db.session import session_scope
from product_importer.services.importer import ImporterParams, ImportReport, ProductImporter


logger = configure_logging()


def run(path: str, update_existing: bool = True) -> ImportReport:
    report = ImportReport()
    with session_scope() as db, open(path, "rb") as fh:
        importer = ProductImporter(db, file_path=path, params=ImporterParams(update_existing=update_existing))
        for line_no, line in enumerate(iter(fh.readline, b""), start=1):
            if not line.strip():
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("line %s: not valid JSON (%s), skipped", line_no, e)
                continue

            importer.file_position = fh.tell()
            result = importer.process_item(row)
            report.add(result)
            logger.info(
                "line %s done: offset=%s percent=%s%%",
                line_no, importer.current_offset(), importer.get_percent_complete(),
            )
    return report


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import parsed product rows from a JSONL file.")
    parser.add_argument("path")
    parser.add_argument("--no-update", action="store_true", help="skip rows that point at existing products")
    args = parser.parse_args(argv)

    create_all()
    report = run(args.path, update_existing=not args.no_update)
    logger.info(
        "imported=%s updated=%s failed=%s skipped=%s",
        len(report.imported), len(report.updated), len(report.failed), len(report.skipped),
    )
    for err in report.failed:
        logger.warning("failed: code=%s msg=%s data=%s", err.code, err.message, err.data)
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
