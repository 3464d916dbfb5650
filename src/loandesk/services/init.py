"""InitService — create a new library directory."""

from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path

from loandesk.config.discovery import CONFIG_FILENAME
from loandesk.config.models import DatabaseConfig, LoansConfig
from loandesk.infrastructure.database.engine import init_database
from loandesk.infrastructure.templates import build_template_environment
from loandesk.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)


class InitService:
    """Writes ``loandesk.toml`` and creates the database."""

    @staticmethod
    def init_library(
        path: Path,
        *,
        name: str,
        loan_days: int | None = None,
        fine_rate: Decimal | None = None,
    ) -> ServiceResult:
        op = "init"
        config_file = path / CONFIG_FILENAME
        if config_file.exists():
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="ALREADY_INITIALIZED",
                    kind="conflict",
                    message=f"{config_file} already exists",
                    detail={"path": str(config_file)},
                ),
            )

        try:
            loans = LoansConfig(
                default_loan_days=loan_days if loan_days is not None else 15,
                daily_fine_rate=fine_rate if fine_rate is not None else Decimal("5"),
            )
        except ValueError as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(code="INVALID_CONFIG", kind="policy_violation", message=str(exc)),
            )
        database = DatabaseConfig()

        path.mkdir(parents=True, exist_ok=True)
        env = build_template_environment(root=path)
        config_file.write_text(
            env.get_template("loandesk.toml.j2").render(
                name=name,
                loan_days=loans.default_loan_days,
                renewal_days=loans.default_renewal_days,
                fine_rate=loans.daily_fine_rate,
                database_path=database.path.as_posix(),
            ),
            encoding="utf-8",
        )
        db_path = path / database.path
        init_database(db_path).dispose()
        logger.debug("Initialized library %r at %s", name, path)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "name": name,
                "path": str(path),
                "config": str(config_file),
                "database": str(db_path),
            },
        )
