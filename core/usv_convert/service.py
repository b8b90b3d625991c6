from __future__ import annotations

import base64
import re
from contextlib import contextmanager
from typing import Iterator, List, Dict, Any

from .errors import (
    ConversionError,
    EmptyInputError,
    UnterminatedQuoteError,
    NoDataError,
    NotUsvFormatError,
    NoRecordsError,
)
from .models import (
    ContentRequest,
    ConvertRequest,
    ConvertResult,
    ConvertResponse,
    Statistics,
    StatisticsRequest,
    StatisticsResponse,
    ResponseLevel,
    TextFormat,
)


API_VERSION = "0.1.0"

UNIT_SEP = "\u241f"  # ␟ フィールド区切り
RECORD_SEP = "\u241e"  # ␞ レコード区切り

# trim 対象は ASCII 空白のみ（NBSP や \x1c-\x1f などは残す）
_ASCII_WS = " \t\n\r\f\v"

Row = List[str]
Table = List[Row]


class InvalidBase64Error(Exception):
    """Base64 デコード失敗時に投げる独自例外"""

    pass


# ---------------------------------------------------------------------------
# Base64 / テキストユーティリティ
# ---------------------------------------------------------------------------


def _decode_base64_to_text(content_b64: str) -> str:
    """Base64 -> UTF-8 テキストに変換

    - 先に空白類（スペース・改行・タブなど）をすべて削除
    - そのうえで validate=True で厳密に Base64 を検証
    """
    try:
        compact = "".join(content_b64.split())
        raw = base64.b64decode(compact, validate=True)
        return raw.decode("utf-8")
    except Exception as exc:  # noqa: BLE001
        raise InvalidBase64Error("content_b64 is not valid Base64 UTF-8 text") from exc


def request_text(request: ContentRequest) -> str:
    """リクエストから変換対象のテキストを取り出す"""
    if request.content_b64 is not None:
        return _decode_base64_to_text(request.content_b64)
    return request.content or ""


def _is_blank(text: str) -> bool:
    return not text or not text.strip(_ASCII_WS)


@contextmanager
def _parsing_stage(fmt: TextFormat) -> Iterator[None]:
    """この中で発生した ConversionError に処理段階 (CSV / USV) を付与して再送出する"""
    try:
        yield
    except ConversionError as exc:
        exc.stage = fmt.value.upper()
        raise


# ---------------------------------------------------------------------------
# CSV パーサ
# ---------------------------------------------------------------------------


def _drop_blank_rows(rows: Table) -> Table:
    """全フィールドが空の行を取り除く（CSV 側の空行抑制ポリシー）"""
    return [row for row in rows if any(row)]


def parse_csv(text: str) -> Table:
    """CSV テキストを 2 次元配列に変換する

    - 1 文字ずつ左から走査し、inside_quotes フラグで状態を持つ
    - "" はクォート内ではリテラルの " になる
    - CRLF は 1 つの行終端として扱う
    - 行番号はクォート外の単独の LF でのみ進む（エラー報告用）
    """
    rows: Table = []
    row: Row = []
    field: List[str] = []
    inside_quotes = False
    line_number = 1

    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        next_char = text[i + 1] if i + 1 < length else ""

        if char == '"':
            if inside_quotes and next_char == '"':
                field.append('"')
                i += 1
            else:
                inside_quotes = not inside_quotes
        elif char == "," and not inside_quotes:
            # NOTE: クォート付きフィールドも含め全フィールドを trim する。
            # クォート内の意図的な前後空白も落ちるが、既存の出力との互換性のため現状維持。
            row.append("".join(field).strip(_ASCII_WS))
            field = []
        elif char in ("\n", "\r") and not inside_quotes:
            if field or row:
                row.append("".join(field).strip(_ASCII_WS))
                rows.append(row)
                row = []
                field = []
            if char == "\n":
                line_number += 1
            # NOTE: CRLF の LF は読み飛ばすだけで行番号は進めない。
            # CRLF のファイルでは行番号が 1 のままになるが、既存の出力との互換性のため現状維持。
            if char == "\r" and next_char == "\n":
                i += 1
        else:
            field.append(char)
        i += 1

    if inside_quotes:
        raise UnterminatedQuoteError(line_number)

    if field or row:
        row.append("".join(field).strip(_ASCII_WS))
        rows.append(row)

    return _drop_blank_rows(rows)


# ---------------------------------------------------------------------------
# USV コーデック
# ---------------------------------------------------------------------------


def array_to_usv(rows: Table) -> str:
    """2 次元配列を USV に変換（エスケープはしない）"""
    return RECORD_SEP.join(UNIT_SEP.join(row) for row in rows)


def _preserve_empty_fields(record: str) -> Row:
    """レコードを ␟ で分割する。空フィールドも位置を保ったまま残す"""
    return record.split(UNIT_SEP)


def split_usv(text: str) -> Table:
    """USV を 2 次元配列に変換。空のレコード（末尾の ␞ など）は捨てる"""
    records = [record for record in text.split(RECORD_SEP) if record]
    return [_preserve_empty_fields(record) for record in records]


def _quote_field(value: str) -> str:
    # 単独の CR も囲む（再パース時に行が分割されないように）。元の出力とはここだけ異なる
    if any(c in value for c in (",", '"', "\n", "\r")):
        return '"' + value.replace('"', '""') + '"'
    return value


def rows_to_csv(rows: Table) -> str:
    """2 次元配列を CSV テキストに再構成する（改行は LF、末尾改行なし）"""
    return "\n".join(",".join(_quote_field(value) for value in row) for row in rows)


# ---------------------------------------------------------------------------
# 変換エントリーポイント
# ---------------------------------------------------------------------------


def csv_to_usv(text: str) -> str:
    """CSV -> USV"""
    if _is_blank(text):
        raise EmptyInputError("CSV")

    with _parsing_stage(TextFormat.csv):
        rows = parse_csv(text)
        if not rows:
            raise NoDataError()
        return array_to_usv(rows)


def usv_to_csv(text: str) -> str:
    """USV -> CSV

    区切り文字の有無チェックはあくまで簡易な判定（フォーマット保証ではない）。
    """
    if _is_blank(text):
        raise EmptyInputError("USV")

    with _parsing_stage(TextFormat.usv):
        if UNIT_SEP not in text and RECORD_SEP not in text:
            raise NotUsvFormatError()

        rows = split_usv(text)
        if not rows:
            raise NoRecordsError()
        return rows_to_csv(rows)


def _parse(text: str, fmt: TextFormat) -> Table:
    if fmt is TextFormat.csv:
        return parse_csv(text)
    if fmt is TextFormat.usv:
        return split_usv(text)
    raise ValueError(f"unsupported format: {fmt!r}")


def get_statistics(text: str, fmt: TextFormat) -> Statistics:
    """行数・列数（先頭行のフィールド数）・文字数を返す

    表示用の補助情報なので、解析に失敗しても例外は投げず 0 件として返す。
    """
    characters = len(text) if isinstance(text, str) else 0
    try:
        rows = _parse(text, TextFormat(fmt))
    except Exception:  # noqa: BLE001
        return Statistics(rows=0, columns=0, characters=characters)

    return Statistics(
        rows=len(rows),
        columns=len(rows[0]) if rows else 0,
        characters=characters,
    )


# ---------------------------------------------------------------------------
# ファイル名 / サマリ
# ---------------------------------------------------------------------------


def suggest_filename(filename: str, target: TextFormat) -> str:
    """拡張子を変換先のもの (.usv / .csv) に置き換えたファイル名を返す（パス部分は除く）"""
    base_name = re.split(r"[\\/]", filename)[-1]
    suggested = re.sub(r"\.[^/.]+$", f".{target.value}", base_name)
    return suggested or f"untitled.{target.value}"


def _summary(source: TextFormat, target: TextFormat, before: Statistics) -> str:
    arrow = f"{source.value.upper()} → {target.value.upper()}"
    if source is TextFormat.csv:
        return f"{arrow}: {before.rows} rows, {before.columns} columns converted"
    return f"{arrow}: {before.rows} rows converted"


# ---------------------------------------------------------------------------
# response_level による間引き
# ---------------------------------------------------------------------------


def _minimize_response(
    level: ResponseLevel,
    result_full: ConvertResult,
    meta_full: Dict[str, Any],
) -> ConvertResponse:
    """
    トップ構造 {result, meta} は維持しつつ、
    response_level に応じて result/meta の中身を最小化する。
    """

    meta_simple: Dict[str, Any] = {
        "version": meta_full.get("version"),
        "direction": meta_full.get("direction"),
        "response_level_used": level.value,
    }
    if "suggested_filename" in meta_full:
        meta_simple["suggested_filename"] = meta_full["suggested_filename"]

    if level == ResponseLevel.simple:
        result = ConvertResult(content=result_full.content)
        return ConvertResponse(result=result, meta=meta_simple)

    if level == ResponseLevel.standard:
        meta_standard: Dict[str, Any] = dict(meta_simple)
        meta_standard["summary"] = meta_full.get("summary")
        result = result_full.model_copy(update={"table": None})
        return ConvertResponse(result=result, meta=meta_standard)

    # debug: 解析結果のテーブルまで含めてすべて返す
    meta_debug = dict(meta_full)
    meta_debug["response_level_used"] = level.value
    return ConvertResponse(result=result_full, meta=meta_debug)


# ---------------------------------------------------------------------------
# API エントリーポイント
# ---------------------------------------------------------------------------


_CONVERTERS = {
    TextFormat.csv: (TextFormat.usv, csv_to_usv),
    TextFormat.usv: (TextFormat.csv, usv_to_csv),
}


def process_conversion(request: ConvertRequest, source: TextFormat) -> ConvertResponse:
    """変換 API のメイン処理（CSV -> USV / USV -> CSV 共通）"""

    target, convert = _CONVERTERS[source]

    # 1) Base64 / プレーンテキストから入力を取り出す
    text = request_text(request)

    # 2) 変換前の統計（失敗しても 0 件になるだけ）
    stats_before = get_statistics(text, source)

    # 3) 変換本体（失敗時は ConversionError をそのまま呼び出し元へ）
    converted = convert(text)

    # 4) 変換後の統計
    stats_after = get_statistics(converted, target)

    result_full = ConvertResult(
        content=converted,
        statistics_before=stats_before,
        statistics_after=stats_after,
        table=(
            _parse(text, source) if request.response_level == ResponseLevel.debug else None
        ),
    )

    meta_full: Dict[str, Any] = {
        "version": API_VERSION,
        "direction": f"{source.value}_to_{target.value}",
        "summary": _summary(source, target, stats_before),
        "source_format": source.value,
        "target_format": target.value,
    }
    if request.filename is not None:
        meta_full["suggested_filename"] = suggest_filename(request.filename, target)

    return _minimize_response(
        level=request.response_level,
        result_full=result_full,
        meta_full=meta_full,
    )


def process_statistics(request: StatisticsRequest) -> StatisticsResponse:
    """統計 API のメイン処理。入力が壊れていてもエラーにはしない"""
    text = request_text(request)
    stats = get_statistics(text, request.format)
    return StatisticsResponse(
        result=stats,
        meta={"version": API_VERSION, "format": request.format.value},
    )
