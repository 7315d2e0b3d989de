"""Entrypoint for the companion controller service."""

from __future__ import annotations

from companion.common.config import LoggingConfig, ServiceConfig, get_pipeline_preset
from companion.common.logging import configure_logging

_config_preset = get_pipeline_preset()
_logging_config = LoggingConfig(**_config_preset["logging"])

# Configure logging BEFORE importing app so uvicorn starts with structured logs
configure_logging(
    _logging_config.level,
    json_logs=_logging_config.json_logs,
    service_name=_logging_config.service_name,
)


def main() -> None:
    """Main entrypoint for the controller service."""
    import uvicorn

    from companion.controller.app import app

    service_config = ServiceConfig(**_config_preset["service"])
    uvicorn.run(
        app,
        host=service_config.host,
        port=service_config.port,
        log_config=None,  # keep our logging configuration
    )


if __name__ == "__main__":
    main()
