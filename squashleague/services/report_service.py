"""
Bug and feature reports. Append-only; listing is for super admins.
"""
from __future__ import annotations

import logging

from squashleague.errors import ForbiddenError, ValidationError
from squashleague.models import Report, ReportStatus, ReportType, User
from squashleague.persistence.store import Store

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, store: Store) -> None:
        self._store = store

    def submit(self, actor: User, type: str, title: str, description: str = "") -> Report:
        try:
            report_type = ReportType(type)
        except ValueError:
            raise ValidationError(f"invalid report type: {type!r}") from None
        title = title.strip()
        if not title:
            raise ValidationError("title is required")
        report = self._store.create_report(Report(
            user_id=actor.id,
            type=report_type.value,
            title=title,
            description=description.strip(),
            status=ReportStatus.OPEN.value,
        ))
        logger.info("Report %s (%s) submitted by %s", report.id, report.type, actor.id)
        return report

    def list_reports(self, actor: User) -> list[Report]:
        if not actor.is_super_admin:
            raise ForbiddenError("only super admins can list reports")
        return self._store.list_reports()
