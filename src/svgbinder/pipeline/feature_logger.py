"""Centralized decision logging for the svgbinder pipeline.

This module logs configuration, feature decisions and error policies for
debugging and troubleshooting. User-facing progress goes through
ProgressReporter instead.
"""

from __future__ import annotations

import logging
from typing import Any

from svgbinder.model.pipeline_options import ConversionOptions

logger = logging.getLogger(__name__)


def log_pipeline_configuration(options: ConversionOptions) -> None:
    """Log the pipeline configuration decisions for debugging.

    Args:
        options: Conversion options to log
    """
    logger.info("Pipeline configuration:")
    logger.info("  Workers: %d", options.workers)
    logger.info("  Recursive discovery: %s", "yes" if options.recursive else "no")
    logger.info("  Per-file pages: %s", "written" if options.write_pages else "not written")
    logger.info("  Merged output: %s", options.merged_name)
    if options.out_dir is not None:
        logger.info("  Output directory: %s", options.out_dir)
    logger.info("  Resource de-duplication: %s", "enabled" if options.dedupe else "disabled")
    logger.info("  Bookmarks: %s", "enabled" if options.bookmarks else "disabled")
    logger.info("  Default page size: %s", options.default_size.value)


def log_feature_decision(
    feature: str, decision: str, context: dict[str, Any] | None = None
) -> None:
    """Log a processing decision.

    Args:
        feature: Name of the feature making the decision
        decision: The decision made (e.g., "inlined", "normalized", "default")
        context: Optional context information
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        logger.info("%s: %s (%s)", feature, decision, context_str)
    else:
        logger.info("%s: %s", feature, decision)


def log_error_policy(
    feature: str, error_type: str, action: str, details: str | None = None
) -> None:
    """Log error handling policy decisions.

    Args:
        feature: Name of the feature encountering the error
        error_type: Type of error (e.g., "decode_failed", "render_failed")
        action: Action taken (e.g., "keep", "skip", "abort")
        details: Optional additional details
    """
    if details:
        logger.warning("%s error policy: %s -> %s (%s)", feature, error_type, action, details)
    else:
        logger.warning("%s error policy: %s -> %s", feature, error_type, action)


__all__ = [
    "log_pipeline_configuration",
    "log_feature_decision",
    "log_error_policy",
]
