"""
Export of analysis results.

CSV export writes one titled section per result part (metadata, keywords,
entities, concepts, categories, tone). JSON export writes
{metadata, statistics, analysis}.
"""

import csv
import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .models import AnalysisResult, TextStats

logger = logging.getLogger(__name__)


EXPORT_VERSION = "1.0.0"


def _timestamp(timestamp: Optional[datetime]) -> str:
    return (timestamp or datetime.now(timezone.utc)).isoformat()


def _section(title: str, rows: list[dict[str, Any]], columns: list[str]) -> str:
    df = pd.DataFrame(rows, columns=columns)
    body = df.to_csv(index=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    return f"## {title} ##\n{body}\n"


def generate_csv(result: AnalysisResult, timestamp: Optional[datetime] = None) -> str:
    """
    Render an analysis result as sectioned CSV.

    Args:
        result: Analysis result to export.
        timestamp: Export time; defaults to now (UTC).

    Returns:
        CSV text. Sections without data are omitted.
    """
    parts = [
        "## METADATA ##\n"
        f"Language,{result.language or 'unknown'}\n"
        f"Timestamp,{_timestamp(timestamp)}\n"
        f"Version,{EXPORT_VERSION}\n\n"
    ]

    if result.keywords:
        parts.append(_section(
            "KEYWORDS",
            [
                {
                    "Text": k.text,
                    "Relevance": k.relevance,
                    "Sentiment Score": k.sentiment.score if k.sentiment else None,
                    "Sentiment Label": k.sentiment.label if k.sentiment else None,
                }
                for k in result.keywords
            ],
            ["Text", "Relevance", "Sentiment Score", "Sentiment Label"],
        ))

    if result.entities:
        parts.append(_section(
            "ENTITIES",
            [
                {
                    "Text": e.text,
                    "Type": e.type,
                    "Relevance": e.relevance,
                    "Confidence": e.confidence,
                    "Sentiment Score": e.sentiment.score if e.sentiment else None,
                    "Sentiment Label": e.sentiment.label if e.sentiment else None,
                }
                for e in result.entities
            ],
            ["Text", "Type", "Relevance", "Confidence", "Sentiment Score", "Sentiment Label"],
        ))

    if result.concepts:
        parts.append(_section(
            "CONCEPTS",
            [
                {"Text": c.text, "Relevance": c.relevance, "DBpedia Resource": c.dbpedia_resource}
                for c in result.concepts
            ],
            ["Text", "Relevance", "DBpedia Resource"],
        ))

    if result.categories:
        parts.append(_section(
            "CATEGORIES",
            [
                {"Label": c.label, "Score": c.score, "Explanation": c.explanation or ""}
                for c in result.categories
            ],
            ["Label", "Score", "Explanation"],
        ))

    if result.classifications:
        parts.append(_section(
            "TONE ANALYSIS",
            [{"Class Name": c.class_name, "Confidence": c.confidence} for c in result.classifications],
            ["Class Name", "Confidence"],
        ))

    return "".join(parts)


def prepare_export_data(
    result: AnalysisResult,
    stats: Optional[TextStats] = None,
    timestamp: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Build the JSON export structure.

    Args:
        result: Analysis result to export.
        stats: Optional statistics of the analyzed text.
        timestamp: Export time; defaults to now (UTC).

    Returns:
        Dict with "metadata", "statistics" and "analysis".
    """
    analysis: dict[str, Any] = {}
    data = result.to_dict()

    if result.keywords:
        analysis["keywords"] = [
            {"text": k["text"], "relevance": k["relevance"], "sentiment": k["sentiment"]}
            for k in data["keywords"]
        ]
    if result.entities:
        analysis["entities"] = [
            {
                "text": e["text"],
                "type": e["type"],
                "relevance": e["relevance"],
                "confidence": e["confidence"],
                "sentiment": e["sentiment"],
            }
            for e in data["entities"]
        ]
    for key in ("concepts", "categories", "classifications"):
        if key in data:
            analysis[key] = data[key]

    statistics: dict[str, Any] = {}
    if stats is not None:
        statistics = {
            "wordCount": stats.word_count,
            "sentenceCount": stats.sentence_count,
            "charCount": stats.char_count,
        }

    return {
        "metadata": {
            "language": result.language or "unknown",
            "timestamp": _timestamp(timestamp),
            "version": EXPORT_VERSION,
        },
        "statistics": statistics,
        "analysis": analysis,
    }


def generate_json(
    result: AnalysisResult,
    stats: Optional[TextStats] = None,
    timestamp: Optional[datetime] = None,
) -> str:
    """Render an analysis result as indented JSON."""
    return json.dumps(prepare_export_data(result, stats, timestamp), indent=2)


def default_export_filename(fmt: str, today: Optional[date] = None) -> str:
    """Get the default download name for an export format ("csv" or "json")."""
    day = (today or date.today()).isoformat()
    if fmt == "csv":
        return f"nlu-analysis-{day}.csv"
    if fmt == "json":
        return f"watson-analysis-{day}.json"
    raise ValueError(f"Unsupported export format: {fmt}")


def write_export(
    result: AnalysisResult,
    path: Union[str, Path],
    stats: Optional[TextStats] = None,
) -> Path:
    """
    Write an export file, choosing the format from the file extension.

    Raises:
        ValueError: If the extension is not .csv or .json.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".csv":
        content = generate_csv(result)
    elif suffix == ".json":
        content = generate_json(result, stats)
    else:
        raise ValueError(f"Unsupported export format: {suffix}. Use .csv or .json")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info(f"Exported analysis to {path}")
    return path
