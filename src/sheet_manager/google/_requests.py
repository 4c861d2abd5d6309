from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .a1 import column_letter
from .types import CellValue, GridDimensions

# Data rows start on the second row; the first holds headers.
FIRST_DATA_ROW = 2

TEXT_RULE = "ISTEXT"
NUMBER_RULE = "ISNUMBER"
BOOLEAN_RULE = "ISLOGICAL"


def infer_rule(value: Any) -> Optional[str]:
    """Map a sample cell value to the validation function it implies.

    bool is tested first because it is a subclass of int. Any other type
    yields no rule.
    """
    if isinstance(value, bool):
        return BOOLEAN_RULE
    if isinstance(value, (int, float)):
        return NUMBER_RULE
    if isinstance(value, str):
        return TEXT_RULE
    return None


def infer_column_rules(
    headers: Sequence[str], rows: Sequence[Sequence[CellValue]]
) -> Dict[int, str]:
    """Return {column_index: rule} inferred from the first data row.

    Columns with no sample value (no rows, or a short first row) get no rule.
    """
    if not rows:
        return {}
    first = rows[0]
    rules: Dict[int, str] = {}
    for col_idx in range(len(headers)):
        if col_idx >= len(first):
            continue
        rule = infer_rule(first[col_idx])
        if rule is not None:
            rules[col_idx] = rule
    return rules


def rule_formula(rule: str, col_idx: int) -> str:
    # Relative reference to the top-left cell of the validated range.
    return f"={rule}({column_letter(col_idx)}{FIRST_DATA_ROW})"


def _req_add_sheet(title: str) -> Dict[str, Any]:
    return {"addSheet": {"properties": {"title": title}}}


def _req_grid_size(sheet_id: int, grid: GridDimensions) -> Dict[str, Any]:
    return {
        "updateSheetProperties": {
            "properties": {
                "sheetId": sheet_id,
                "gridProperties": {
                    "rowCount": grid.row_count,
                    "columnCount": grid.column_count,
                },
            },
            "fields": "gridProperties(rowCount,columnCount)",
        }
    }


def _req_data_validation(
    sheet_id: int, col_idx: int, rule: str, row_count: int
) -> Dict[str, Any]:
    return {
        "setDataValidation": {
            "range": {
                "sheetId": sheet_id,
                "startRowIndex": FIRST_DATA_ROW - 1,
                "endRowIndex": row_count + 1,
                "startColumnIndex": col_idx,
                "endColumnIndex": col_idx + 1,
            },
            "rule": {
                "condition": {
                    "type": "CUSTOM_FORMULA",
                    "values": [{"userEnteredValue": rule_formula(rule, col_idx)}],
                },
                "strict": True,
            },
        }
    }


def validation_requests(
    sheet_id: int, rules: Dict[int, str], row_count: int
) -> List[Dict[str, Any]]:
    return [
        _req_data_validation(sheet_id, col_idx, rule, row_count)
        for col_idx, rule in sorted(rules.items())
    ]
