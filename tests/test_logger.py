"""Request and performance lines land in their own log files."""

from types import SimpleNamespace

from loguru import logger

from rfd_store.config.logger import log_performance, log_request, setup_logger
from rfd_store.config.settings import settings


def test_tagged_sinks_split_messages(tmp_path):
    setup_logger(str(tmp_path), "INFO")
    request = SimpleNamespace(method="GET", url=SimpleNamespace(path="/v1/rfds/7"))
    try:
        logger.info("Inserted RFD 7")
        log_request(request, 200, 0.01)
        log_request(request, None, 0.02, error=RuntimeError("boom"))
        log_performance("rfd.insert", 0.003, number=7)
    finally:
        # Closing the sinks flushes them
        logger.remove()
        setup_logger(settings.LOGS_DIR, settings.LOG_LEVEL)

    requests_log = (tmp_path / "requests.log").read_text()
    assert "REQUEST GET /v1/rfds/7 - 200" in requests_log
    assert "REQUEST ERROR GET /v1/rfds/7 - RuntimeError: boom" in requests_log
    assert "PERFORMANCE" not in requests_log

    performance_log = (tmp_path / "performance.log").read_text()
    assert "PERFORMANCE: rfd.insert completed in" in performance_log
    assert "REQUEST" not in performance_log

    errors_log = (tmp_path / "errors.log").read_text()
    assert "RuntimeError: boom" in errors_log
    assert "Inserted RFD 7" not in errors_log

    assert "Inserted RFD 7" in (tmp_path / "app.log").read_text()
