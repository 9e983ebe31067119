"""
Normalizes a depth-interval table into validated, sorted interval sequences per log.
Handles column checks, numeric coercion, label cleanup and ordering warnings.
"""

import os
import math
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from borevue.core.exceptions import DataShapeError, RowWarning, record_warning

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("From", "To")


def load_table(file_path: str, sheet_name: Any = 0, header_row: int = 0) -> pd.DataFrame:
    """
    Load a depth-interval table from Excel or CSV.

    Args:
        file_path: Path to a .xlsx/.xls or delimited text file
        sheet_name: Excel sheet to read (ignored for CSV)
        header_row: Zero-based row holding the column headers

    Returns:
        DataFrame with whitespace-trimmed column names
    """
    extension = os.path.splitext(file_path)[1].lower()
    if extension in (".xlsx", ".xlsm", ".xls"):
        df = pd.read_excel(file_path, sheet_name=sheet_name, header=header_row)
    else:
        df = pd.read_csv(file_path, header=header_row)

    df.columns = [str(col).strip() for col in df.columns]
    logger.info(f"Loaded {os.path.basename(file_path)}: {len(df)} rows, columns {df.columns.tolist()}")
    return df


def normalize_label(value: Any) -> Optional[str]:
    """Convert a raw categorical cell to a label, or None when it is missing."""
    if value is None:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            return str(int(value))
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    label = str(value).strip()
    return label or None


@dataclass(frozen=True)
class DepthInterval:
    """One table row: a depth span plus its per-log values."""
    start: float
    end: float
    values: Mapping[str, Any] = field(default_factory=dict)
    row: Optional[int] = None

    def __post_init__(self):
        # Freeze the per-log values
        object.__setattr__(self, 'values', MappingProxyType(dict(self.values)))

    @property
    def is_valid(self) -> bool:
        """Finite depths with start strictly above end."""
        return math.isfinite(self.start) and math.isfinite(self.end) and self.start < self.end

    @property
    def thickness(self) -> float:
        return self.end - self.start

    def label(self, log_name: str) -> Optional[str]:
        return self.values.get(log_name)


class IntervalIndex:
    """
    Per-log sorted interval sequences built from one input table.

    Row-level problems never abort the load: they are recorded as
    RowWarning instances in ``self.warnings`` and the row is kept.
    """

    def __init__(self):
        """Initialize an empty index."""
        self.logger = logging.getLogger(__name__)
        self.intervals: List[DepthInterval] = []
        self.categorical_logs: Dict[str, Tuple[DepthInterval, ...]] = {}
        self.numeric_logs: Dict[str, Tuple[np.ndarray, np.ndarray]] = {}
        self.missing_columns: List[str] = []
        self.warnings: List[RowWarning] = []
        self.max_depth: float = 0.0
        self.nan_policy = "missing"

    @classmethod
    def from_dataframe(cls,
                       df: pd.DataFrame,
                       categorical_columns: Sequence[str] = (),
                       numeric_columns: Sequence[str] = (),
                       nan_policy: str = "missing") -> 'IntervalIndex':
        """
        Build an index from a raw table.

        Args:
            df: Raw table with From/To and the declared columns
            categorical_columns: Label columns, one log each
            numeric_columns: Numeric columns plotted against depth
            nan_policy: "missing" keeps NaN numeric cells, "zero" fills them with 0

        Returns:
            Populated IntervalIndex

        Raises:
            DataShapeError: If From or To is absent
        """
        index = cls()
        index.nan_policy = nan_policy
        index._build(df, list(categorical_columns), list(numeric_columns))
        return index

    def _warn(self, message: str, row: Optional[int] = None, column: Optional[str] = None):
        record_warning(RowWarning(message, row=row, column=column), self.logger, self.warnings)

    def _build(self, df: pd.DataFrame, categorical_columns: List[str], numeric_columns: List[str]):
        found = [str(col) for col in df.columns]
        missing_required = [col for col in REQUIRED_COLUMNS if col not in found]
        if missing_required:
            raise DataShapeError(
                f"The following required columns were not found: {', '.join(missing_required)}. "
                f"Current detected headers: {', '.join(found)}",
                missing=missing_required,
                found=found
            )

        # Declared columns that are absent become error panels later
        for col in categorical_columns + numeric_columns:
            if col not in found:
                self.missing_columns.append(col)
                self._warn(f"Column '{col}' not found in the data file", column=col)

        present_categorical = [c for c in categorical_columns if c in found]
        present_numeric = [c for c in numeric_columns if c in found]

        depth_from = self._coerce_numeric(df["From"], "From")
        depth_to = self._coerce_numeric(df["To"], "To")

        numeric_values = {}
        for col in present_numeric:
            values = self._coerce_numeric(df[col], col)
            if self.nan_policy == "zero":
                values = values.fillna(0.0)
            numeric_values[col] = values

        # Build one interval per row, flagging (but keeping) bad depths
        for position in range(len(df)):
            start = float(depth_from.iloc[position])
            end = float(depth_to.iloc[position])
            values = {col: normalize_label(df[col].iloc[position]) for col in present_categorical}
            for col in present_numeric:
                values[col] = float(numeric_values[col].iloc[position])

            interval = DepthInterval(start=start, end=end, values=values, row=position)
            if not (math.isfinite(start) and math.isfinite(end)):
                self._warn(f"Row {position}: non-finite depth From={start}, To={end}", row=position)
            elif start >= end:
                self._warn(f"Row {position}: 'From' ({start}) is not less than 'To' ({end})", row=position)
            self.intervals.append(interval)

        self._check_order()

        finite_to = depth_to[np.isfinite(depth_to)]
        self.max_depth = float(finite_to.max()) if len(finite_to) else 0.0

        for col in present_categorical:
            labelled = [iv for iv in self.intervals if iv.label(col) is not None]
            excluded = len(self.intervals) - len(labelled)
            if excluded:
                self.logger.debug(f"Log '{col}': {excluded} rows without a label excluded")
            self.categorical_logs[col] = tuple(sorted(labelled, key=self._sort_key))

        # Stable sort by start depth, NaN starts last
        starts = depth_from.to_numpy(dtype=float)
        order = np.argsort(starts, kind="stable")
        for col in present_numeric:
            self.numeric_logs[col] = (
                starts[order],
                numeric_values[col].to_numpy(dtype=float)[order]
            )

        self.logger.info(
            f"Indexed {len(self.intervals)} intervals, {len(self.categorical_logs)} categorical and "
            f"{len(self.numeric_logs)} numeric logs, max depth {self.max_depth}"
        )

    def _coerce_numeric(self, series: pd.Series, column: str) -> pd.Series:
        """Convert a column to float, warning once when cells could not be parsed."""
        numeric = pd.to_numeric(series, errors="coerce").astype(float)
        unparseable = numeric.isna() & series.notna()
        if unparseable.any():
            rows = np.flatnonzero(unparseable.to_numpy()).tolist()
            self._warn(
                f"Unparseable values in numeric column '{column}' at rows {rows[:10]}",
                row=rows[0],
                column=column
            )
        elif numeric.isna().any():
            self._warn(
                f"NaN values found in numeric column '{column}'. "
                f"These will be treated as {'zero' if self.nan_policy == 'zero' else 'missing'}.",
                column=column
            )
        return numeric.reset_index(drop=True)

    @staticmethod
    def _sort_key(interval: DepthInterval) -> Tuple[bool, float]:
        # NaN starts sort last
        return (not math.isfinite(interval.start), interval.start if math.isfinite(interval.start) else 0.0)

    def _check_order(self):
        """Warn about rows that are out of order or overlap once sorted."""
        starts = [iv.start for iv in self.intervals if math.isfinite(iv.start)]
        if any(b < a for a, b in zip(starts, starts[1:])):
            self._warn("Rows are not sorted by 'From'; they will be sorted before plotting")

        ordered = sorted((iv for iv in self.intervals if iv.is_valid), key=self._sort_key)
        for previous, current in zip(ordered, ordered[1:]):
            if current.start < previous.end:
                self._warn(
                    f"Row {current.row} ({current.start}-{current.end}) overlaps row "
                    f"{previous.row} ({previous.start}-{previous.end})",
                    row=current.row
                )

    def log(self, name: str) -> Tuple[DepthInterval, ...]:
        """Sorted intervals carrying a label for a categorical log."""
        return self.categorical_logs.get(name, ())

    def numeric_series(self, name: str) -> Tuple[np.ndarray, np.ndarray]:
        """(start depths, values) for a numeric log."""
        if name not in self.numeric_logs:
            return np.array([], dtype=float), np.array([], dtype=float)
        return self.numeric_logs[name]

    def has_column(self, name: str) -> bool:
        return name in self.categorical_logs or name in self.numeric_logs
