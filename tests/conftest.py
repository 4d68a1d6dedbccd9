from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List

import pytest


@pytest.fixture
def dbms_payload() -> Dict[str, Any]:
    return {
        "output": {
            "examMetadata": {
                "subject": "DBMS",
                "type": "midSem",
                "totalMarks": 30,
                "duration": "1.5 hours",
                "questionsToAttempt": 4,
                "totalQuestions": 4,
            },
            "questions": [
                {
                    "questionNumber": 1,
                    "isCompulsory": True,
                    "totalMarks": 10,
                    "content": [
                        {"subQuestion": "Define normalization", "marks": 5},
                        {"subQuestion": "Explain 3NF", "marks": 5},
                    ],
                },
            ],
        }
    }


@pytest.fixture
def paired_payload(dbms_payload) -> Dict[str, Any]:
    """DBMS exam with an OR pair (Q2/Q3) and fractional marks."""
    output = dict(dbms_payload["output"])
    output["questions"] = output["questions"] + [
        {
            "questionNumber": 3,
            "isCompulsory": False,
            "alternativeQuestionNumber": 2,
            "totalMarks": 10,
            "content": [
                {"subQuestion": "What is a B+ tree?", "marks": 2.5},
                {"subQuestion": "Insert keys 5, 9, 12 into an empty B+ tree", "marks": 7.5},
            ],
        },
        {
            "questionNumber": 2,
            "isCompulsory": False,
            "alternativeQuestionNumber": 3,
            "totalMarks": 10,
            "content": [
                {"subQuestion": "Explain ACID properties", "marks": 4},
                {"subQuestion": "Describe two-phase locking", "marks": 3},
                {"subQuestion": "What is a deadlock?", "marks": 3},
            ],
        },
    ]
    return {"output": output}


@pytest.fixture
def topics() -> List[List[str]]:
    return [
        ["ER model", "Relational algebra"],
        ["Normalization", "Functional dependencies"],
        ["Transactions"],
        ["Indexing", "B+ trees"],
    ]


@pytest.fixture
def generated_at() -> datetime:
    return datetime(2026, 10, 17, 14, 5)
