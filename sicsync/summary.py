from .logger import StructuredLogger, get_logger
from .models import RunResult


def log_run_summary(result: RunResult, logger: StructuredLogger = None) -> None:
    """Log input and per-item errors of a run, then the run metrics."""
    logger = logger or get_logger()
    report = result.report

    if report.input_error:
        logger.error("Input Error", details=report.input_error)

    for record_id, item_error in report.item_errors.items():
        logger.error(f"Map Error for key: {record_id}", kind=item_error.kind, details=item_error.message)

    counts = result.counts()
    logger.info(
        "Run complete",
        **counts,
    )
    logger.log_metrics_summary()
