# sms_api/services/csv_processor.py
import pandas as pd
import io
from typing import List, Dict, Any, Iterable, Optional

from ..core.exceptions import BadRequestError


class CSVProcessor:
    @staticmethod
    def read_rows(contents: bytes, required_columns: Iterable[str] = ()) -> List[Dict[str, Any]]:
        """
        Parse an uploaded CSV into row dicts.
        Column names are normalised to snake_case; blank cells are dropped.
        """
        try:
            decoded_content = contents.decode('utf-8-sig')
            # Keep every cell as text; codes like "0012" must survive
            df = pd.read_csv(io.StringIO(decoded_content), dtype=str)
        except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise BadRequestError(f"Failed to process CSV: {str(e)}")

        df.columns = df.columns.str.strip().str.lower().str.replace(' ', '_')

        missing_columns = [col for col in required_columns if col not in df.columns]
        if missing_columns:
            raise BadRequestError(f"Missing required columns: {missing_columns}")

        rows = []
        for _, row in df.iterrows():
            row_dict = {}
            for col, value in row.items():
                if pd.notna(value):
                    value = value.strip()
                    if value != "":
                        row_dict[col] = value
            rows.append(row_dict)
        return rows

    @staticmethod
    def to_csv(rows: List[Dict[str, Any]], columns: Optional[List[str]] = None) -> str:
        df = pd.DataFrame(rows, columns=columns)
        return df.to_csv(index=False)

    @staticmethod
    def generate_student_template() -> str:
        """Generate CSV template for bulk student import"""
        template_data = {
            'student_code': ['STU0001', 'STU0002'],
            'first_name': ['Ada', 'Alan'],
            'last_name': ['Lovelace', 'Turing'],
            'email': ['ada@example.edu', 'alan@example.edu'],
            'phone': ['+1-555-0100', '+1-555-0200'],
            'sex': ['FEMALE', 'MALE'],
            'birthday': ['2012-12-10', '2012-06-23'],
            'grade_level': [7, 7],
            'address': ['12 School Lane', '34 Academy Road'],
        }
        return pd.DataFrame(template_data).to_csv(index=False)
