import importlib.util
import tempfile
from pathlib import Path

import pytest

from student_service.config import Settings
from student_service.services import ImportService, StudentService


def test_import_items_reports_created_skipped_and_errors(store):
    svc = StudentService(store)
    items = [
        {'id': 1, 'name': 'Alice', 'password': 'p', 'scores': {'Math': 95, 'Art': 70}},
        {'id': 1000, 'name': 'John again', 'password': 'p'},
        {'id': 'not-a-number', 'name': 'Bad', 'password': 'p'},
        'oops',
        {'id': 2, 'name': 'Bob', 'password': 'p', 'scores': ['Math']},
    ]
    summary = ImportService(svc).import_items(items)
    assert summary['created'] == 1
    assert summary['skipped'] == 1
    assert [e['index'] for e in summary['errors']] == [2, 3, 4]
    assert svc.find_student(1).scores == {'Math': 95, 'Art': 70}
    assert svc.find_student(1000).name == 'John'


def test_import_items_dry_run_predicts_real_run(store):
    items = [
        {'id': 5, 'name': 'Eve', 'password': 'p'},
        {'id': 1000, 'name': 'John again', 'password': 'p'},
        {'id': 5, 'name': 'Eve twice', 'password': 'p'},
        'oops',
    ]
    svc = ImportService(StudentService(store))
    predicted = svc.import_items(items, dry_run=True)
    assert predicted == {'created': 1, 'skipped': 2, 'errors': predicted['errors']}
    assert [e['index'] for e in predicted['errors']] == [3]
    assert store.save_calls == 0
    assert not store.exists_by_id(5)
    assert svc.import_items(items) == predicted


def test_settings_defaults_in_dev(monkeypatch):
    monkeypatch.setenv('ENV', 'dev')
    monkeypatch.delenv('DATABASE_URL', raising=False)
    monkeypatch.setenv('LOG_LEVEL', 'debug')
    s = Settings()
    assert s.DATABASE_URL.startswith('sqlite:///')
    assert s.DATABASE_URL.endswith('students.db')
    assert s.LOG_LEVEL == 'DEBUG'
    assert s.ALLOW_DEV_CORS is True


def test_settings_require_database_url_outside_dev(monkeypatch):
    monkeypatch.setenv('ENV', 'prod')
    monkeypatch.delenv('DATABASE_URL', raising=False)
    with pytest.raises(RuntimeError):
        Settings()
    monkeypatch.setenv('DATABASE_URL', 'postgresql://db/students')
    assert Settings().DATABASE_URL == 'postgresql://db/students'


def _load_import_script():
    path = Path(__file__).resolve().parents[1] / 'scripts' / 'import_students.py'
    spec = importlib.util.spec_from_file_location('import_students', path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_import_script_reports_bad_input(tmp_path, capsys):
    script = _load_import_script()
    broken = tmp_path / 'broken.json'
    broken.write_text('[{"id": 1,', encoding='utf-8')
    assert script.main(str(broken)) == 1
    assert 'Invalid JSON' in capsys.readouterr().out

    not_a_list = tmp_path / 'object.json'
    not_a_list.write_text('{"id": 1}', encoding='utf-8')
    assert script.main(str(not_a_list)) == 1
    assert 'Expected a JSON array' in capsys.readouterr().out

    assert script.main(str(tmp_path / 'missing.json')) == 1
    assert 'File not found' in capsys.readouterr().out


def test_suite_runs_against_throwaway_database():
    from student_service.config import settings
    from student_service.database import engine
    assert settings.DATABASE_URL.startswith(f"sqlite:///{tempfile.gettempdir()}")
    assert 'student-service-tests-' in settings.DATABASE_URL
    assert str(engine.url) == settings.DATABASE_URL
