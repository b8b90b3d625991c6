from __future__ import annotations

from typing import Optional


class ConversionError(Exception):
    """CSV / USV 変換で発生する例外の基底クラス

    stage が設定されている場合は "CSV parsing failed: ..." のように
    処理段階つきのメッセージになる（例外の型と元のメッセージは保持）。
    """

    code = "CONVERSION_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.stage: Optional[str] = None

    def __str__(self) -> str:
        if self.stage:
            return f"{self.stage} parsing failed: {self.message}"
        return self.message


class EmptyInputError(ConversionError):
    """入力が空、または空白のみ"""

    code = "EMPTY_INPUT"

    def __init__(self, format_label: str) -> None:
        super().__init__(f"Input file is empty. Please provide {format_label} content.")
        self.format_label = format_label


class UnterminatedQuoteError(ConversionError):
    """クォートが閉じられないまま入力が終わった"""

    code = "UNTERMINATED_QUOTE"

    def __init__(self, line: int) -> None:
        super().__init__(f"Unclosed quote at line {line}. Check your CSV formatting.")
        self.line = line


class NoDataError(ConversionError):
    code = "NO_DATA"

    def __init__(self) -> None:
        super().__init__("No valid data rows found in CSV.")


class NotUsvFormatError(ConversionError):
    """区切り文字 (␟ / ␞) がひとつも含まれていない"""

    code = "NOT_USV_FORMAT"

    def __init__(self) -> None:
        super().__init__(
            "No USV separators found. Is this really a USV file? "
            "USV files should contain visible separator characters (␟, ␞)."
        )


class NoRecordsError(ConversionError):
    code = "NO_RECORDS"

    def __init__(self) -> None:
        super().__init__("No valid records found in USV file.")
