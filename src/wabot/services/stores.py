"""
SQL-backed stores used by the reply pipeline.

- KnowledgeStore: FAQ entries (search + admin CRUD)
- ProfileStore: one row per phone number, upserted after every exchange
- ConversationStore: append-only message history
- MetricsSink: analytics rows (response time, knowledge hits, intents)
"""
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from wabot.core.database import Database
from wabot.core.logging import logger
from wabot.services.assistant.types import ConversationTurn, KnowledgeEntry, UserProfile


def utc_now() -> str:
    """Timestamp format shared by every table (ISO-8601, UTC)."""
    return datetime.now(timezone.utc).isoformat()


def _dump_json(value: Optional[Dict[str, Any]]) -> Optional[str]:
    return json.dumps(value) if value is not None else None


def _like_term(text: str) -> str:
    """Substring LIKE pattern with the user's own % and _ taken literally (ESCAPE '!')."""
    escaped = text.replace("!", "!!").replace("%", "!%").replace("_", "!_")
    return f"%{escaped}%"


def _load_json(value: Any) -> Dict[str, Any]:
    if not value:
        return {}
    if isinstance(value, dict):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError) as e:
        logger.warning(f"Ignoring malformed JSON column: {e}")
        return {}


# =============================================================================
# Knowledge base
# =============================================================================

_KNOWLEDGE_COLUMNS = "id, category, keywords, question, answer, priority, is_active"


class KnowledgeStore:
    """Question/answer facts used to ground replies."""

    def __init__(self, db: Database):
        self.db = db

    def search(self, query: str, category: Optional[str] = None, limit: int = 5) -> List[KnowledgeEntry]:
        """
        Find active entries for a message, best first.

        A category match is tried first; when it yields nothing (or no
        category is given) the query is matched as a substring against
        keywords and question.
        """
        limit = int(limit)
        rows: List[Dict[str, Any]] = []

        if category:
            rows = self.db.fetchall(
                f"SELECT {_KNOWLEDGE_COLUMNS} FROM knowledge_base "
                "WHERE is_active = 1 AND category = :category "
                "ORDER BY priority DESC, id ASC LIMIT :limit",
                {"category": category, "limit": limit},
            )

        if not rows and query:
            term = _like_term(query.lower())
            rows = self.db.fetchall(
                f"SELECT {_KNOWLEDGE_COLUMNS} FROM knowledge_base "
                "WHERE is_active = 1 AND (LOWER(keywords) LIKE :term ESCAPE '!' OR LOWER(question) LIKE :term ESCAPE '!') "
                "ORDER BY priority DESC, id ASC LIMIT :limit",
                {"term": term, "limit": limit},
            )

        return [KnowledgeEntry.from_row(row) for row in rows]

    def add(
        self,
        category: str,
        keywords: str,
        question: str,
        answer: str,
        priority: int = 1,
        is_active: bool = True,
    ) -> int:
        """Insert an entry and return its id."""
        now = utc_now()
        entry_id = self.db.insert("knowledge_base", {
            "category": category,
            "keywords": keywords,
            "question": question,
            "answer": answer,
            "priority": int(priority),
            "is_active": bool(is_active),
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"Knowledge entry {entry_id} added ({category})")
        return entry_id

    def get(self, entry_id: int) -> Optional[KnowledgeEntry]:
        row = self.db.fetchone(
            f"SELECT {_KNOWLEDGE_COLUMNS} FROM knowledge_base WHERE id = :id",
            {"id": entry_id},
        )
        return KnowledgeEntry.from_row(row) if row else None

    def update(self, entry_id: int, **fields) -> bool:
        """Partially update an entry. Unknown or None fields are ignored."""
        allowed = {"category", "keywords", "question", "answer", "priority", "is_active"}
        data = {k: v for k, v in fields.items() if k in allowed and v is not None}
        if not data:
            return self.get(entry_id) is not None
        data["updated_at"] = utc_now()
        return self.db.update("knowledge_base", data, "id = :entry_id", {"entry_id": entry_id}) > 0

    def delete(self, entry_id: int) -> bool:
        return self.db.delete("knowledge_base", "id = :id", {"id": entry_id}) > 0

    def list(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """Paged admin listing with optional category and substring filters."""
        where = ["1=1"]
        params: Dict[str, Any] = {}
        if category:
            where.append("category = :category")
            params["category"] = category
        if search:
            where.append(
                "(keywords LIKE :search ESCAPE '!' OR question LIKE :search ESCAPE '!' "
                "OR answer LIKE :search ESCAPE '!')"
            )
            params["search"] = _like_term(search)
        where_sql = " AND ".join(where)

        page = max(int(page), 1)
        limit = max(int(limit), 1)
        rows = self.db.fetchall(
            f"SELECT {_KNOWLEDGE_COLUMNS} FROM knowledge_base WHERE {where_sql} "
            "ORDER BY priority DESC, created_at DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": limit, "offset": (page - 1) * limit},
        )
        total_row = self.db.fetchone(f"SELECT COUNT(*) AS total FROM knowledge_base WHERE {where_sql}", params)
        total = int(total_row["total"]) if total_row else 0

        return {
            "data": [KnowledgeEntry.from_row(row).to_dict() for row in rows],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": (total + limit - 1) // limit,
            },
        }

    def count(self) -> int:
        row = self.db.fetchone("SELECT COUNT(*) AS total FROM knowledge_base")
        return int(row["total"]) if row else 0

    def clear(self) -> int:
        """Remove every entry. Returns how many were deleted."""
        return self.db.delete("knowledge_base", "1=1", {})

    def seed(self, entries: List[Dict[str, Any]]) -> int:
        """Load entries, skipping questions that already exist. Returns how many were added."""
        added = 0
        for entry in entries:
            existing = self.db.fetchone(
                "SELECT id FROM knowledge_base WHERE question = :question",
                {"question": entry["question"]},
            )
            if existing:
                continue
            self.add(**entry)
            added += 1
        logger.info(f"Seeded {added} knowledge entries")
        return added


# =============================================================================
# User profiles
# =============================================================================

# Counter and JSON merges happen inside the statement, never read-modify-write.
_PROFILE_UPSERT_SQL = {
    "sqlite": """
        INSERT INTO user_profiles
            (phone_number, name, email, preferences, context_data, total_messages,
             last_interaction, created_at, updated_at)
        VALUES (:phone, :name, :email, :preferences, :context, 1, :now, :now, :now)
        ON CONFLICT(phone_number) DO UPDATE SET
            name = COALESCE(excluded.name, user_profiles.name),
            email = COALESCE(excluded.email, user_profiles.email),
            preferences = json_patch(COALESCE(user_profiles.preferences, '{}'), COALESCE(excluded.preferences, '{}')),
            context_data = json_patch(COALESCE(user_profiles.context_data, '{}'), COALESCE(excluded.context_data, '{}')),
            total_messages = user_profiles.total_messages + 1,
            last_interaction = excluded.last_interaction,
            updated_at = excluded.updated_at
    """,
    "mysql": """
        INSERT INTO user_profiles
            (phone_number, name, email, preferences, context_data, total_messages,
             last_interaction, created_at, updated_at)
        VALUES (:phone, :name, :email, :preferences, :context, 1, :now, :now, :now)
        ON DUPLICATE KEY UPDATE
            name = COALESCE(VALUES(name), name),
            email = COALESCE(VALUES(email), email),
            preferences = JSON_MERGE_PATCH(COALESCE(preferences, '{}'), COALESCE(VALUES(preferences), '{}')),
            context_data = JSON_MERGE_PATCH(COALESCE(context_data, '{}'), COALESCE(VALUES(context_data), '{}')),
            total_messages = total_messages + 1,
            last_interaction = VALUES(last_interaction),
            updated_at = VALUES(updated_at)
    """,
}


class ProfileStore:
    """Per-contact profile with a server-side message counter."""

    def __init__(self, db: Database):
        self.db = db
        if db.dialect not in _PROFILE_UPSERT_SQL:
            raise ValueError(f"Unsupported database dialect for profile upsert: {db.dialect}")
        self._upsert_sql = _PROFILE_UPSERT_SQL[db.dialect]

    def get(self, identifier: str) -> Optional[UserProfile]:
        row = self.db.fetchone(
            "SELECT phone_number, name, email, preferences, context_data, total_messages, last_interaction "
            "FROM user_profiles WHERE phone_number = :phone",
            {"phone": identifier},
        )
        if not row:
            return None
        return UserProfile(
            identifier=row["phone_number"],
            name=row.get("name"),
            email=row.get("email"),
            preferences=_load_json(row.get("preferences")),
            context=_load_json(row.get("context_data")),
            total_messages=int(row.get("total_messages") or 0),
            last_interaction=row.get("last_interaction"),
        )

    def upsert(
        self,
        identifier: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        preferences: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Insert the profile with a count of 1, or merge fields and add 1 to the count."""
        self.db.execute(self._upsert_sql, {
            "phone": identifier,
            "name": name,
            "email": email,
            "preferences": _dump_json(preferences),
            "context": _dump_json(context),
            "now": utc_now(),
        })


# =============================================================================
# Conversations
# =============================================================================

class ConversationStore:
    """Append-only conversation log keyed by phone number."""

    def __init__(self, db: Database):
        self.db = db

    def append(
        self,
        identifier: str,
        text: str,
        role: str,
        backend: Optional[str] = None,
        latency_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        return self.db.insert("conversations", {
            "phone_number": identifier,
            "message_text": text,
            "message_type": role,
            "ai_model": backend,
            "response_time_ms": latency_ms,
            "metadata": _dump_json(metadata),
            "created_at": utc_now(),
        })

    def recent(self, identifier: str, limit: int = 20, role: Optional[str] = None) -> List[ConversationTurn]:
        """Most recent turns (optionally of one role), returned oldest first."""
        sql = (
            "SELECT message_text, message_type, created_at, ai_model, response_time_ms, metadata "
            "FROM conversations WHERE phone_number = :phone"
        )
        params: Dict[str, Any] = {"phone": identifier, "limit": int(limit)}
        if role:
            sql += " AND message_type = :role"
            params["role"] = role
        rows = self.db.fetchall(sql + " ORDER BY id DESC LIMIT :limit", params)
        return [
            ConversationTurn(
                role=row["message_type"],
                text=row["message_text"],
                timestamp=row.get("created_at"),
                backend=row.get("ai_model"),
                latency_ms=row.get("response_time_ms"),
                metadata=_load_json(row.get("metadata")),
            )
            for row in reversed(rows)
        ]

    def count(self, identifier: str) -> int:
        row = self.db.fetchone(
            "SELECT COUNT(*) AS total FROM conversations WHERE phone_number = :phone",
            {"phone": identifier},
        )
        return int(row["total"]) if row else 0

    def average_response_time(self, identifier: str, days: int = 30) -> Optional[float]:
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
        row = self.db.fetchone(
            "SELECT AVG(response_time_ms) AS avg_time FROM conversations "
            "WHERE phone_number = :phone AND response_time_ms IS NOT NULL AND created_at >= :since",
            {"phone": identifier, "since": since},
        )
        if not row or row["avg_time"] is None:
            return None
        return float(row["avg_time"])

    def totals(self, start: Optional[str] = None, end: Optional[str] = None) -> Dict[str, int]:
        """Message and distinct-contact counts in a time window."""
        row = self.db.fetchone(
            "SELECT COUNT(*) AS messages, COUNT(DISTINCT phone_number) AS users FROM conversations "
            "WHERE created_at >= :start AND created_at <= :end",
            {"start": start or "1970-01-01", "end": end or utc_now()},
        )
        return {
            "totalConversations": int(row["messages"]) if row else 0,
            "totalUsers": int(row["users"]) if row else 0,
        }


# =============================================================================
# Metrics
# =============================================================================

class MetricsSink:
    """Analytics rows: one value plus JSON tags per event."""

    def __init__(self, db: Database):
        self.db = db

    def record(self, name: str, value: float, tags: Optional[Dict[str, Any]] = None) -> None:
        self.db.insert("bot_analytics", {
            "metric_name": name,
            "metric_value": float(value),
            "dimensions": _dump_json(tags),
            "recorded_at": utc_now(),
        })

    def summary(self, name: str, start: Optional[str] = None, end: Optional[str] = None) -> Dict[str, Any]:
        """avg/min/max/count of one metric, optionally bounded in time."""
        sql = (
            "SELECT AVG(metric_value) AS avg_value, MIN(metric_value) AS min_value, "
            "MAX(metric_value) AS max_value, COUNT(*) AS count "
            "FROM bot_analytics WHERE metric_name = :name"
        )
        params: Dict[str, Any] = {"name": name}
        if start:
            sql += " AND recorded_at >= :start"
            params["start"] = start
        if end:
            sql += " AND recorded_at <= :end"
            params["end"] = end

        row = self.db.fetchone(sql, params) or {}
        return {
            "avg_value": float(row["avg_value"]) if row.get("avg_value") is not None else 0.0,
            "min_value": float(row["min_value"]) if row.get("min_value") is not None else None,
            "max_value": float(row["max_value"]) if row.get("max_value") is not None else None,
            "count": int(row.get("count") or 0),
        }

    def values(self, name: str) -> List[Dict[str, Any]]:
        """All recorded values for a metric with decoded tags, oldest first."""
        rows = self.db.fetchall(
            "SELECT metric_value, dimensions, recorded_at FROM bot_analytics "
            "WHERE metric_name = :name ORDER BY id ASC",
            {"name": name},
        )
        return [
            {"value": float(row["metric_value"]), "tags": _load_json(row["dimensions"]), "recorded_at": row["recorded_at"]}
            for row in rows
        ]
