# sales_kpi/kpi_engine/export.py
"""
Formatted Excel Export for Sales KPI Reports

Creates Excel reports with:
- Summary sheet with team totals and forecasts
- Team sheet (one row per user) with compliance colour scales
- Daily Progress sheet (walk-in counts per user per day, coloured by status)
- Daily Totals sheet (team chart series)

Uses openpyxl for formatting capabilities.
"""

import logging
from datetime import datetime
from io import BytesIO
from typing import Optional

import pandas as pd

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.formatting.rule import ColorScaleRule

from .constants import DAY_STATUS_FILLS, EXCEL_STYLES
from .models import KPIReport

logger = logging.getLogger(__name__)


class KPIReportExport:
    """
    Excel report generator for sales KPI reports.

    Usage:
        exporter = KPIReportExport()
        excel_bytes = exporter.create_report(report, viewer_name='Asha')

        with open('sales_kpi.xlsx', 'wb') as f:
            f.write(excel_bytes.getvalue())
    """

    TEAM_COLUMNS = [
        ('full_name', 'Name', 25),
        ('user_email', 'Email', 30),
        ('walk_ins_count', 'Walk-ins', 10),
        ('walk_in_target', 'Walk-in Target', 14),
        ('walk_in_compliance', 'Walk-in %', 11),
        ('meetings_count', 'Meetings', 10),
        ('followups_count', 'Follow-ups', 11),
        ('closures_count', 'Closures (MTD)', 14),
        ('closure_target', 'Closure Target', 14),
        ('closure_compliance', 'Closure %', 11),
        ('days_with_walk_in', 'Days Met', 10),
        ('target_source', 'Target Source', 14),
    ]

    def __init__(self):
        """Initialize with default styles."""
        self.wb = None
        self._init_styles()

    def _init_styles(self):
        """Initialize reusable styles."""
        self.header_fill = PatternFill(
            start_color=EXCEL_STYLES['header_fill_color'],
            end_color=EXCEL_STYLES['header_fill_color'],
            fill_type='solid'
        )

        self.header_font = Font(
            bold=True,
            color=EXCEL_STYLES['header_font_color'],
            size=11
        )

        self.title_font = Font(bold=True, size=16)
        self.subtitle_font = Font(bold=True, size=12)

        thin_border = Side(style='thin', color='000000')
        self.cell_border = Border(
            left=thin_border,
            right=thin_border,
            top=thin_border,
            bottom=thin_border
        )

        self.center_align = Alignment(horizontal='center', vertical='center')
        self.right_align = Alignment(horizontal='right', vertical='center')

        self.status_fills = {
            status: PatternFill(start_color=color, end_color=color, fill_type='solid')
            for status, color in DAY_STATUS_FILLS.items()
        }

    # =========================================================================
    # MAIN EXPORT METHOD
    # =========================================================================

    def create_report(
        self,
        report: KPIReport,
        viewer_name: Optional[str] = None
    ) -> BytesIO:
        """
        Create formatted Excel report with multiple sheets.

        Args:
            report: KPIReport from SalesKPIMetrics.build_report
            viewer_name: Optional name shown on the summary sheet

        Returns:
            BytesIO containing Excel file
        """
        self.wb = Workbook()

        self._create_summary_sheet(report, viewer_name)
        self._create_team_sheet(report.user_stats_frame())
        self._create_daily_progress_sheet(report)
        self._create_daily_totals_sheet(report.chart_frame())

        output = BytesIO()
        self.wb.save(output)
        output.seek(0)

        logger.info(f"Excel KPI report created: {len(report.user_stats)} users")
        return output

    # =========================================================================
    # SUMMARY SHEET
    # =========================================================================

    def _create_summary_sheet(self, report: KPIReport, viewer_name: Optional[str]):
        """Create cover page with team totals."""
        ws = self.wb.active
        ws.title = "Summary"

        row = 1

        ws.cell(row=row, column=1, value="Sales KPI Report")
        ws.cell(row=row, column=1).font = self.title_font
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=4)
        row += 2

        info_rows = [
            ("As of:", report.as_of.isoformat()),
            ("Tracking Period:", f"{report.period} days"),
            ("Generated:", datetime.now().strftime('%Y-%m-%d %H:%M')),
        ]
        if viewer_name:
            info_rows.insert(0, ("Prepared for:", viewer_name))
        if report.settings is not None:
            info_rows.extend([
                ("Min Walk-ins / Day:", report.settings.min_walkins_per_day),
                ("Min Closures / Period:", report.settings.min_closures_per_period),
                ("Alert Threshold:", f"{report.settings.underperformance_threshold}%"),
            ])

        for label, value in info_rows:
            ws.cell(row=row, column=1, value=label)
            ws.cell(row=row, column=2, value=value)
            row += 1
        row += 1

        totals = report.totals
        sections = [
            ("Month to Date", [
                ("Bookings", totals.mtd_bookings),
                ("Team Booking Target", totals.team_booking_target),
                ("Achievement %", f"{totals.mtd_performance_pct}%"),
                ("Walk-ins", totals.mtd_walk_ins),
                ("Team Walk-in Target", totals.team_walk_in_target),
            ]),
            ("Month-end Forecast", [
                ("Bookings", totals.forecast_bookings),
                ("Walk-ins", totals.forecast_walk_ins),
            ]),
            ("Today", [
                ("Walk-ins", totals.today_walk_ins),
                ("Meetings", totals.today_meetings),
                ("Follow-ups", totals.today_followups),
                ("Closures", totals.today_closures),
            ]),
            (f"Last {report.period} Days", [
                ("Walk-ins", totals.walk_ins),
                ("Meetings", totals.meetings),
                ("Follow-ups", totals.followups),
                ("Closures (MTD)", totals.closures),
            ]),
        ]

        for title, items in sections:
            ws.cell(row=row, column=1, value=title)
            ws.cell(row=row, column=1).font = self.subtitle_font
            row += 1

            for label, value in items:
                ws.cell(row=row, column=1, value=label)
                ws.cell(row=row, column=2, value=value)
                ws.cell(row=row, column=2).alignment = self.right_align
                row += 1
            row += 1

        if report.underperformers:
            ws.cell(row=row, column=1, value="Underperformance Alerts")
            ws.cell(row=row, column=1).font = self.subtitle_font
            row += 1
            for email in report.underperformers:
                ws.cell(row=row, column=1, value=email)
                row += 1

        ws.column_dimensions['A'].width = 28
        ws.column_dimensions['B'].width = 20

    # =========================================================================
    # TEAM SHEET
    # =========================================================================

    def _write_header(self, ws, columns):
        for col_idx, (_, header, width) in enumerate(columns, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.fill = self.header_fill
            cell.font = self.header_font
            cell.alignment = self.center_align
            cell.border = self.cell_border
            ws.column_dimensions[get_column_letter(col_idx)].width = width

    def _create_team_sheet(self, df: pd.DataFrame):
        """Create per-user sheet with compliance colour scales."""
        if df.empty:
            return

        ws = self.wb.create_sheet("Team")
        columns = self.TEAM_COLUMNS
        self._write_header(ws, columns)

        for row_idx, record in enumerate(df.to_dict('records'), 2):
            for col_idx, (col_name, _, _) in enumerate(columns, 1):
                value = record.get(col_name)
                if value is not None and not isinstance(value, str):
                    value = int(value)

                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.border = self.cell_border
                if col_name not in ('full_name', 'user_email', 'target_source'):
                    cell.alignment = self.center_align

        # Red below 50%, yellow at 100%, green from 150%
        for col_idx, (col_name, _, _) in enumerate(columns, 1):
            if col_name in ('walk_in_compliance', 'closure_compliance'):
                letter = get_column_letter(col_idx)
                ws.conditional_formatting.add(
                    f'{letter}2:{letter}{len(df) + 1}',
                    ColorScaleRule(
                        start_type='num', start_value=50, start_color='F8696B',
                        mid_type='num', mid_value=100, mid_color='FFEB84',
                        end_type='num', end_value=150, end_color='63BE7B'
                    )
                )

        ws.freeze_panes = 'A2'

    # =========================================================================
    # DAILY SHEETS
    # =========================================================================

    def _create_daily_progress_sheet(self, report: KPIReport):
        """Walk-in count per user per day, filled by met/partial/missed."""
        if not report.user_stats:
            return

        ws = self.wb.create_sheet("Daily Progress")
        days = [p.date for p in report.user_stats[0].daily_progress]
        columns = [('user_email', 'Email', 30)] + [(d, d, 12) for d in days]
        self._write_header(ws, columns)

        for row_idx, stats in enumerate(report.user_stats, 2):
            ws.cell(row=row_idx, column=1, value=stats.user_email).border = self.cell_border
            for col_idx, progress in enumerate(stats.daily_progress, 2):
                cell = ws.cell(row=row_idx, column=col_idx, value=progress.count)
                cell.border = self.cell_border
                cell.alignment = self.center_align
                fill = self.status_fills.get(progress.status)
                if fill is not None:
                    cell.fill = fill

        ws.freeze_panes = 'B2'

    def _create_daily_totals_sheet(self, df: pd.DataFrame):
        """Team totals per day across the tracking window."""
        if df.empty:
            return

        ws = self.wb.create_sheet("Daily Totals")
        columns = [
            ('date', 'Date', 12),
            ('walk_ins', 'Walk-ins', 10),
            ('meetings', 'Meetings', 10),
            ('followups', 'Follow-ups', 11),
            ('closures', 'Closures', 10),
        ]
        self._write_header(ws, columns)

        for row_idx, record in enumerate(df.to_dict('records'), 2):
            for col_idx, (col_name, _, _) in enumerate(columns, 1):
                value = record[col_name]
                if col_name != 'date':
                    value = int(value)
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.border = self.cell_border
                cell.alignment = self.center_align

        ws.freeze_panes = 'A2'
