from collections.abc import Iterable, Iterator, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import copy
import logging
import math

logger = logging.getLogger(__name__)


class SortPolicy(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    POPULAR = "popular"


# Ключи записи комментария: snake_case нашего API и camelCase старого клиента
_PARENT_KEYS = ("parent_id", "parentId")
_CREATED_KEYS = ("created_at", "createdAt")
_LIKES_KEYS = ("likes_count", "likesCount")

# Числа больше этого порога считаются миллисекундами (Date.now() в JS)
MILLISECONDS_THRESHOLD = 1e11


def _field(comment: Mapping, keys: tuple) -> Any:
    for key in keys:
        value = comment.get(key)
        if value is not None:
            return value
    return None


def timestamp_of(comment: Mapping) -> float:
    """
    Время создания комментария в секундах эпохи. Всё, что не удалось
    разобрать, а также NaN и бесконечности, считается нулём. Числа больше
    MILLISECONDS_THRESHOLD читаются как миллисекунды.
    """
    value = _field(comment, _CREATED_KEYS)

    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        try:
            stamp = float(value)
        except OverflowError:
            return 0.0
        if not math.isfinite(stamp):
            return 0.0
        if abs(stamp) > MILLISECONDS_THRESHOLD:
            stamp /= 1000
        return stamp
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return 0.0
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return 0.0


def likes_of(comment: Mapping) -> int:
    value = _field(comment, _LIKES_KEYS)
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    try:
        return int(value or 0)
    except (TypeError, ValueError, OverflowError):
        return 0


def _is_record_list(comments: Any) -> bool:
    if comments is None or isinstance(comments, (str, bytes, Mapping)):
        return False
    return isinstance(comments, Iterable)


def _copy_record(comment: Mapping) -> Dict[str, Any]:
    # Узел не делит вложенные данные (author и т.п.) с записью вызывающего
    fields = {key: value for key, value in comment.items() if key != "replies"}
    try:
        fields = copy.deepcopy(fields)
    except (TypeError, copy.Error) as e:
        logger.debug(f"Comment {comment.get('id')!r} is not deep-copyable, using shallow copy: {e}")
    return {**fields, "replies": []}


def _sort_replies(roots: List[Dict[str, Any]]) -> None:
    # Обход стеком: глубокие ветки не упираются в лимит рекурсии
    stack = list(roots)
    while stack:
        node = stack.pop()
        replies = node["replies"]
        replies.sort(key=timestamp_of)
        stack.extend(replies)


def build_tree(comments: Optional[Iterable[Mapping]]) -> List[Dict[str, Any]]:
    """
    Собирает дерево ответов из плоского списка комментариев.

    Каждый узел - копия записи с добавленным списком ``replies``. Ответы на
    отсутствующие комментарии отбрасываются, записи без ``id`` тоже. При
    повторяющемся ``id`` побеждает последнее вхождение: и поля узла, и его
    позиция при равных ``created_at``. Корни и все ``replies`` упорядочены
    по возрастанию ``created_at``.
    """
    if not _is_record_list(comments):
        return []

    nodes: Dict[str, Dict[str, Any]] = {}

    # Первый проход: узлы по id
    for comment in comments:
        if not isinstance(comment, Mapping):
            logger.debug(f"Skipping non-mapping comment record: {comment!r}")
            continue

        comment_id = comment.get("id")
        if comment_id is None or comment_id == "":
            logger.debug("Skipping comment without id")
            continue

        key = str(comment_id)
        if key in nodes:
            # Переносим дубликат в конец, чтобы порядок соответствовал последнему вхождению
            del nodes[key]
        nodes[key] = _copy_record(comment)

    roots: List[Dict[str, Any]] = []

    # Второй проход: связи родитель - ответ
    for key, node in nodes.items():
        parent_id = _field(node, _PARENT_KEYS)

        if parent_id is None or parent_id == "":
            roots.append(node)
            continue

        parent = nodes.get(str(parent_id))
        if parent is None or parent is node:
            logger.debug(f"Dropping orphan comment {key} (parent {parent_id} not found)")
            continue

        parent["replies"].append(node)

    _sort_replies(roots)
    roots.sort(key=timestamp_of)

    return roots


def sort_threads(roots: Optional[Iterable[Dict[str, Any]]], policy: SortPolicy | str = SortPolicy.NEWEST) -> List[Dict[str, Any]]:
    """Порядок веток верхнего уровня. Ответы внутри веток не трогаются"""
    if not _is_record_list(roots):
        return []
    roots = [root for root in roots if isinstance(root, Mapping)]

    try:
        policy = SortPolicy(policy)
    except ValueError:
        logger.debug(f"Unknown sort policy {policy!r}, using newest")
        policy = SortPolicy.NEWEST

    # sorted стабилен и с reverse=True: равные ключи сохраняют исходный порядок
    if policy == SortPolicy.OLDEST:
        return sorted(roots, key=timestamp_of)
    if policy == SortPolicy.POPULAR:
        return sorted(roots, key=likes_of, reverse=True)
    return sorted(roots, key=timestamp_of, reverse=True)


def flatten_tree(roots: Iterable[Dict[str, Any]]) -> Iterator[Dict[str, Any]]:
    """Обход дерева в глубину, в порядке отображения"""
    stack = list(reversed(list(roots)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node["replies"]))
