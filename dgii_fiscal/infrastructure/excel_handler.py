from pathlib import Path

import openpyxl
import pandas as pd
import structlog

from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

logger = structlog.get_logger()

_MONEY_FORMAT = '#,##0.00_ ;\\-#,##0.00 '
_HEADER_FILL = PatternFill(start_color="195BA6", end_color="195BA6", fill_type="solid")
_HEADER_FONT = Font(bold=True, color="FFFFFF")

COLUMN_FORMATS = {
    "Tipo NCF": {"alignment": Alignment(horizontal="center")},
    "NCF": {"alignment": Alignment(horizontal="center")},
    "RNC/Cédula": {"number_format": "@", "alignment": Alignment(horizontal="center")},
    "Fecha": {"number_format": "dd/mm/yyyy", "alignment": Alignment(horizontal="center")},
    "Moneda": {"alignment": Alignment(horizontal="center")},
    "Monto": {"number_format": _MONEY_FORMAT},
    "ITBIS": {"number_format": _MONEY_FORMAT},
    "Ret. ISR": {"number_format": _MONEY_FORMAT},
    "Total": {"number_format": _MONEY_FORMAT},
    "Estado": {"alignment": Alignment(horizontal="center")},
}


class OpenpyxlPreviewWriter:
    """Hoja de revisión del 607 para contabilidad. No se envía a la DGII."""

    def write(
        self, df: pd.DataFrame, file_path: Path, sheet_name: str = "Vista previa 607"
    ) -> Path:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_excel(file_path, sheet_name=sheet_name, index=False, engine="openpyxl")

        wb = openpyxl.load_workbook(file_path)
        try:
            ws = wb[sheet_name]
            column_names = list(df.columns)

            for col_idx, col_name in enumerate(column_names, start=1):
                header = ws.cell(row=1, column=col_idx)
                header.fill = _HEADER_FILL
                header.font = _HEADER_FONT
                header.alignment = Alignment(horizontal="center")

                fmt = COLUMN_FORMATS.get(col_name)
                if fmt:
                    for row_idx in range(2, ws.max_row + 1):
                        cell = ws.cell(row=row_idx, column=col_idx)
                        if "number_format" in fmt:
                            cell.number_format = fmt["number_format"]
                        if "alignment" in fmt:
                            cell.alignment = fmt["alignment"]

                ws.column_dimensions[get_column_letter(col_idx)].width = self._column_width(
                    df, col_name
                )

            ws.freeze_panes = "A2"
            wb.save(file_path)
        finally:
            wb.close()

        logger.info("excel_preview_written", path=str(file_path), rows=len(df))
        return file_path

    @staticmethod
    def _column_width(df: pd.DataFrame, col_name: str) -> int:
        longest = max((len(str(v)) for v in df[col_name]), default=0)
        return min(max(len(col_name), longest) + 2, 50)
