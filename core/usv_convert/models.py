from __future__ import annotations

from enum import Enum
from typing import Any, Optional, List, Dict

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict


class TextFormat(str, Enum):
    """Text format handled by the converter."""

    csv = "csv"
    usv = "usv"


class ResponseLevel(str, Enum):
    """
    Response verbosity level.
    - simple   : Minimal payload (converted content + minimal meta)
    - standard : Includes statistics before/after + summary
    - debug    : Full response for diagnostics (includes the parsed table)
    """

    simple = "simple"
    standard = "standard"
    debug = "debug"


class Statistics(BaseModel):
    """columns は先頭行のフィールド数（全行の最大値ではない）"""

    rows: int = 0
    columns: int = 0
    characters: int = 0


class ContentRequest(BaseModel):
    """
    content（プレーンテキスト）か content_b64（Base64 UTF-8）のどちらか一方を受け取る。
    改行コードや不可視文字をそのまま運びたい場合は content_b64 を使う想定。
    """

    content: Optional[str] = None
    content_b64: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "ContentRequest":
        if (self.content is None) == (self.content_b64 is None):
            raise ValueError("exactly one of content / content_b64 must be provided")
        return self


class ConvertRequest(ContentRequest):
    """
    USV Convert API (v0.1) 変換リクエストモデル

    filename を渡すと、変換先の拡張子に置き換えたファイル名を meta に返す。
    """

    filename: Optional[str] = None

    response_level: ResponseLevel = Field(
        default=ResponseLevel.simple,
        description="Response verbosity: simple | standard | debug",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "content": "a,b\n1,2",
                "filename": "data.csv",
                "response_level": "standard",
            }
        }
    )


class StatisticsRequest(ContentRequest):
    format: TextFormat = TextFormat.csv


class ConvertResult(BaseModel):
    """
    result 部は response_level に応じて省略されうるため、
    statistics / table は Optional とする（simple 時はどちらもなし）。
    """

    content: str
    statistics_before: Optional[Statistics] = None
    statistics_after: Optional[Statistics] = None
    table: Optional[List[List[str]]] = None


class ConvertResponse(BaseModel):
    result: ConvertResult
    meta: Dict[str, Any]


class StatisticsResponse(BaseModel):
    result: Statistics
    meta: Dict[str, Any]
