"""Classification prompt and transcript sampling."""

from __future__ import annotations

from typing import Literal

SampleMethod = Literal["start", "middle", "end", "all"]

DEFAULT_SAMPLE_LENGTH = 8000
_ALL_SAMPLE_MAX_PIECE = 500


def prepare_text_sample(
    full_text: str,
    max_length: int = DEFAULT_SAMPLE_LENGTH,
    method: SampleMethod = "start",
) -> str:
    """Cut a transcript down to at most roughly max_length characters.

    ``all`` takes the head of evenly spaced windows across the whole text
    (a quarter of each window, at most 500 chars) joined by ``...`` lines.
    Text already within max_length is returned unchanged.
    """
    if len(full_text) <= max_length:
        return full_text

    if method == "end":
        return full_text[-max_length:]

    if method == "middle":
        start = (len(full_text) - max_length) // 2
        return full_text[start : start + max_length]

    if method == "all":
        windows = -(-len(full_text) // max_length)
        window_size = len(full_text) // windows
        piece = min(window_size // 4, _ALL_SAMPLE_MAX_PIECE)
        return "".join(
            full_text[i * window_size : i * window_size + piece] + "\n...\n"
            for i in range(windows)
        )

    return full_text[:max_length]


def build_classification_prompt(text: str) -> str:
    """Prompt asking for ``{"category": ..., "reason": ...}`` JSON."""
    return f"""あなたは会議の文字起こしデータを高精度で分類する専門AIです。
以下の分類基準に従って、入力される会議テキストを分析してください。

# 分類カテゴリーと判断基準

## smallTalk
- 業務に直接関係のない雑談
- キーワード例: 週末の予定、天気、食事

## internalMeeting
- プロジェクト進捗や課題の共有
- キーワード例: タスク、進捗、スケジュール

## private
- 個人的な相談や評価
- キーワード例: 相談、キャリア、評価

## other
- 上記に分類できない場合

# 出力形式
必ず以下のJSON形式で出力し、余分なテキストは含めないでください：
{{
  "category": "選択したカテゴリー",
  "reason": "選択理由の簡潔な説明（100文字以内）"
}}

文字起こしは以下です:
{text}
"""
