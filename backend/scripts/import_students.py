"""CLI script to bulk-load students from a JSON file into the backend DB.
Usage: python scripts/import_students.py FILE [--dry-run]

FILE holds a JSON array of objects with `id`, `name`, `password` and an
optional `scores` mapping of exam name to score.
"""
import sys
import argparse
import json
import pathlib
# Ensure `backend/` is on sys.path so `student_service` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from student_service.database import engine, create_db_and_tables
from student_service.repositories import StudentRepository
from student_service import services


def main(path: str, dry_run: bool = False) -> int:
    """Load `path` and import it into the configured database.

    Results are printed to stdout for a quick CLI feedback loop.
    """
    file_path = pathlib.Path(path)
    if not file_path.exists():
        print(f'File not found: {file_path}')
        return 1
    try:
        items = json.loads(file_path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        print(f'Invalid JSON in {file_path}: {e}')
        return 1
    if not isinstance(items, list):
        print('Expected a JSON array of students')
        return 1
    create_db_and_tables()
    with Session(engine) as session:
        svc = services.ImportService(services.StudentService(StudentRepository(session)))
        summary = svc.import_items(items, dry_run=dry_run)
    print(f"Created: {summary['created']}  Skipped: {summary['skipped']}  Errors: {len(summary['errors'])}")
    for err in summary['errors']:
        print(f"  item {err['index']}: {err['error']}")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('file', help='JSON file with an array of students')
    parser.add_argument('--dry-run', action='store_true', help='validate only, write nothing')
    args = parser.parse_args()
    sys.exit(main(args.file, dry_run=args.dry_run))
