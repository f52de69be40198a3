"""Convert report objects into JSON and CSV payloads."""

from __future__ import annotations

import csv
from decimal import Decimal
from io import StringIO
from typing import Dict, Sequence

from .hours import round2
from .models import AnnualReport, TranscriptRow, YearlySummaryRow

TRANSCRIPT_CSV_HEADER = ("academic_year", "course_title", "subject", "hours_total", "credits_at_scale")


class ReportExporter:
    """Shape engine results for the HTTP boundary."""

    def annual_report_payload(self, report: AnnualReport) -> Dict[str, object]:
        return report.to_dict()

    def transcript_payload(self, rows: Sequence[TranscriptRow], *, scale: Decimal) -> Dict[str, object]:
        return {
            "rows": [row.to_dict() for row in rows],
            "scale": float(scale),
        }

    def yearly_summary_payload(self, rows: Sequence[YearlySummaryRow]) -> Dict[str, object]:
        return {"rows": [row.to_dict() for row in rows]}

    def transcript_csv(self, rows: Sequence[TranscriptRow]) -> str:
        buffer = StringIO()
        writer = csv.writer(buffer)
        writer.writerow(TRANSCRIPT_CSV_HEADER)
        for row in rows:
            writer.writerow(
                [
                    row.academic_year,
                    row.course_title,
                    row.subject,
                    f"{round2(row.hours_total):.2f}",
                    f"{round2(row.credits_at_scale):.2f}",
                ]
            )
        return buffer.getvalue()


__all__ = ["ReportExporter", "TRANSCRIPT_CSV_HEADER"]
