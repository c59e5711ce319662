import pytest

from sensgate.config.settings import settings


@pytest.fixture(autouse=True)
def _no_audit_file(monkeypatch):
    # 单测默认不写审计文件，需要时在用例内单独打开
    monkeypatch.setattr(settings, "audit_log_path", "")
