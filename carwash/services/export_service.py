"""
Weekly Export Service.

Produces the list of the current week's bookings for the wash crew,
either as CSV or as an Excel workbook.  Columns: name, car, booking
date (dd/mm/yyyy) and parking spot.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Callable, Optional

from openpyxl import Workbook
from openpyxl.styles import Font

from carwash.database import StoreError
from carwash.logger import StructuredLogger
from carwash.models.enums import ExportFormat
from carwash.models.registration import Registration
from carwash.models.service_models import ExportFile, ServiceResult
from carwash.models.user import User
from carwash.repositories.registration_repository import RegistrationRepository
from carwash.services.base_service import BaseService
from carwash.services.settings_service import forbidden, store_failure
from carwash.utils.audit import log_audit_event
from carwash.utils.calendar import week_key

EXPORT_HEADER: tuple[str, ...] = ("Nome", "Carro", "Data", "Lugar")

_MEDIA_TYPES: dict[ExportFormat, str] = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.XLSX: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _row(registration: Registration) -> tuple[str, str, str, str]:
    return (
        registration.user_name,
        registration.car_details,
        registration.date.strftime("%d/%m/%Y"),
        registration.parking_spot or "",
    )


def render_csv(registrations: list[Registration]) -> bytes:
    """CSV with a plain header and fully quoted data rows.

    Encoded as UTF-8 with a BOM so Excel shows accented names correctly.
    """
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(EXPORT_HEADER)
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for registration in registrations:
        writer.writerow(_row(registration))
    return buffer.getvalue().encode("utf-8-sig")


def render_xlsx(registrations: list[Registration], week: int) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = f"Semana {week}"

    sheet.append(list(EXPORT_HEADER))
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for registration in registrations:
        sheet.append(list(_row(registration)))

    for column, width in zip("ABCD", (28, 36, 12, 32)):
        sheet.column_dimensions[column].width = width

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class ExportService(BaseService):
    """Admin download of the current week's registrations."""

    def __init__(
        self,
        registration_repo: RegistrationRepository,
        logger: StructuredLogger,
        clock: Callable[[], datetime],
    ) -> None:
        super().__init__(logger)
        self._repo = registration_repo
        self._clock = clock

    def export_week(
        self,
        current_user: User,
        fmt: ExportFormat = ExportFormat.CSV,
        now: Optional[datetime] = None,
    ) -> ServiceResult[ExportFile]:
        """Build the export file for the week containing *now*."""
        if not current_user.is_admin:
            return forbidden("exportar inscrições")

        week, week_year = week_key(now or self._clock())
        try:
            registrations = [
                r for r in self._repo.get_all() if r.in_week(week, week_year)
            ]
        except StoreError as exc:
            self._logger.error("Export fetch failed: %s", exc)
            return store_failure(exc)

        registrations.sort(key=lambda r: r.date)
        if fmt == ExportFormat.XLSX:
            content = render_xlsx(registrations, week)
        else:
            content = render_csv(registrations)

        log_audit_event(
            logger=self._logger,
            action="EXPORT",
            entity_type="Registration",
            entity_id=f"{week:02d}/{week_year}",
            user_id=current_user.id,
            details={"format": str(fmt), "rows": str(len(registrations))},
        )
        return ServiceResult(
            success=True,
            data=ExportFile(
                filename=f"lavagens-semana-{week}.{fmt.value}",
                content=content,
                media_type=_MEDIA_TYPES[fmt],
            ),
        )
