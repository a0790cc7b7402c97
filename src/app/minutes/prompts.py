"""Prompt templates for minutes generation.

The global-summary prompt fixes the section headings that
``parse_global_summary`` looks for; the two must change together.
"""

from __future__ import annotations

import json

from src.app.minutes.schemas import MeetingTopic, SummarizationOptions, TextChunk


def build_global_summary_prompt(
    full_text: str,
    date: str | None = None,
    topic: str | None = None,
) -> str:
    """Whole-transcript summary prompt with fixed section headings."""
    meeting_topic = topic or "不明なトピック"
    meeting_date = date or "不明な日時"

    return f"""
以下は会議の不完全な文字起こしです。
あなたの仕事は、この会議の議事録を明確なMarkdown形式でまとめることです。

## 全体の概要
- ミーティングの目的: [議論の主題、もしくは「不明」]
- 参加者: [参加者名をカンマ区切りで、または「不明」]
- 日時: {meeting_date}
- 場所: [オンラインまたは「不明」]

## サマリ
要約のガイドライン:
- 議論の流れを論理的に整理して記載
- 重要な決定事項や懸念事項を優先的に含める
- 数値や具体的な指標は必ず含める
- 各項目は2-3文程度で具体的に記述

## 決まったこと
記載基準:
- 明確な合意が得られた事項
- 承認された計画や方針
- スケジュールの確定事項
※ 暫定的な決定は「暫定的な決定事項：」と明記

## ネクストアクション
記載要件:
- 「- [担当者] タスク内容 (期限: YYYY-MM-DD, 優先度: 高/中/低)」の形式
- 担当者が不明な場合は [未定] と記載
※ 重要度に応じて並び替えて記載
※ タスクがない場合はセクションを省略

# 解析の注意点
- 略語や専門用語は可能な限り正式名称に展開
- 個人的な雑談は除外
- 重要な数値や指標は明確に記録

以下が会議「{meeting_topic}」の文字起こしです：
{full_text}

以上の形式で議事録を作成してください。
"""


def build_topic_analysis_prompt(
    chunk: TextChunk,
    options: SummarizationOptions | None = None,
) -> str:
    """Per-chunk topic analysis prompt requesting a single JSON object."""
    opts = options or SummarizationOptions()

    lang_instruction = (
        "すべての出力を日本語で行ってください。"
        if opts.language == "ja"
        else "Please provide all output in English."
    )
    time_hint = (
        "この部分の{}時間（文字起こしから取得、HH:MM:SS形式）"
        if opts.include_timestamps
        else "含めない"
    )
    speakers_hint = '["この部分で発言している人のリスト"]' if opts.include_speakers else "[]"

    return f"""
あなたは会議の文字起こしデータから議論のトピックを特定し、タイムライン形式で要約する専門AIです。
{lang_instruction}

## 指示
以下の文字起こしデータを分析し、この部分で議論されている主なトピックを特定してください。
そして、そのトピックに関する議論の内容を簡潔に要約してください。

## 出力形式
以下のJSON形式で出力してください：

```json
{{
  "topic": "識別されたトピックのタイトル（20文字以内）",
  "startTime": "{time_hint.format('開始')}",
  "endTime": "{time_hint.format('終了')}",
  "speakers": {speakers_hint},
  "summary": "トピックの要約（100-200文字）",
  "keyPoints": [
    "重要なポイント1",
    "重要なポイント2",
    "重要なポイント3（最大{opts.max_topics}つまで）"
  ]
}}
```

## 文字起こしデータ（チャンク #{chunk.id}）:
{chunk.text}

注意：このチャンクに複数のトピックが含まれていると判断した場合でも、最も主要なトピック1つのみを抽出してください。
"""


def build_timeline_integration_prompt(topics: list[MeetingTopic]) -> str:
    """Prompt that renders sorted topics into one deduplicated markdown timeline."""
    topics_json = json.dumps(
        [t.model_dump(by_alias=True) for t in topics],
        ensure_ascii=False,
        indent=2,
    )

    return f"""
あなたは会議のタイムラインを構造化して整理するAIアシスタントです。

## 指示
以下の複数のトピック分析結果を統合して、一貫性のある会議のタイムラインを作成してください。
時系列順に並べ、繰り返しや矛盾を解消してください。

## 出力形式
以下のマークダウン形式で出力してください：

### トピック1：[トピック名]
- 時間帯: [開始時間] 〜 [終了時間]
- 主な話者: [話者リスト]
- 概要: [トピックの要約]
- 重要ポイント:
  - [ポイント1]
  - [ポイント2]

### トピック2：[トピック名]
...

以下のトピック分析結果を統合してタイムラインを作成してください：
{topics_json}
"""


def build_decision_extraction_prompt(text: str) -> str:
    """Prompt asking for decisions as a bullet list."""
    return f"""
あなたは会議の文字起こしから決定事項を高精度で抽出するAIアシスタントです。

## 指示
以下の会議の文字起こしを分析し、明確に決定された事項を抽出してください。
決定事項は、参加者間で合意されたアイデア、計画、行動方針などです。

## 決定事項の判断基準
- 明示的に「決定しました」「合意しました」などの表現がある
- 全員（または権限を持つ人）が同意している
- 具体的な行動、日程、方針が決まっている

## 出力形式
決定事項を「- 」で始まる箇条書きで出力してください。
決定事項が見つからない場合は「- 明確な決定事項はありませんでした」と出力してください。

## 文字起こしデータ:
{text}
"""


def build_action_item_extraction_prompt(text: str) -> str:
    """Prompt asking for action items as a JSON array."""
    return f"""
あなたは会議の文字起こしからアクションアイテム（タスク）を高精度で抽出するAIアシスタントです。

## 指示
以下の会議の文字起こしを分析し、参加者に割り当てられたタスクや「やるべきこと」を抽出してください。

## 出力形式
以下のJSON形式でアクションアイテムのリストを出力してください：

```json
[
  {{
    "task": "タスクの内容",
    "assignee": "担当者名または役割（不明な場合は null）",
    "dueDate": "期限（明示されている場合のみ、なければ null）",
    "priority": "high / medium / low のいずれか"
  }}
]
```

アクションアイテムが見つからない場合は空の配列 [] を返してください。

## 文字起こしデータ:
{text}
"""
