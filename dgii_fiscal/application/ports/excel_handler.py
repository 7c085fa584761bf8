from pathlib import Path
from typing import Protocol

import pandas as pd


class ExcelPreviewWriter(Protocol):
    def write(self, df: pd.DataFrame, file_path: Path, sheet_name: str = "Vista previa 607") -> Path: ...
