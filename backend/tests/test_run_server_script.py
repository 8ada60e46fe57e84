import importlib.util
from pathlib import Path

from academy.config import settings

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "run_server.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("run_server_script", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_run_server_serves_the_app_with_configured_address():
    script = _load_script()
    calls = []
    script.main(run=lambda app, **kwargs: calls.append((app, kwargs)))
    assert calls == [("academy.main:app", {
        'host': settings.HOST,
        'port': settings.PORT,
        'reload': False,
        'log_level': settings.LOG_LEVEL.lower(),
    })]


def test_run_server_accepts_overrides():
    script = _load_script()
    calls = []
    script.main("0.0.0.0", 9000, reload=True, run=lambda app, **kwargs: calls.append(kwargs))
    assert calls[0]['host'] == "0.0.0.0"
    assert calls[0]['port'] == 9000
    assert calls[0]['reload'] is True
