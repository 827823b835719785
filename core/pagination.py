# core/pagination.py
import math
from typing import Tuple, List, Any

from sqlmodel import Session, select, func


def paginate(session: Session, statement, page: int, limit: int) -> Tuple[List[Any], int, dict]:
    """Run a select with skip=(page-1)*limit; returns (rows, total, pagination)."""
    total = session.exec(select(func.count()).select_from(statement.order_by(None).subquery())).one()
    rows = session.exec(statement.offset((page - 1) * limit).limit(limit)).all()
    pages = math.ceil(total / limit) if limit else 0
    return rows, total, {
        "current": page,
        "pages": pages,
        "has_next": page < pages,
        "has_prev": page > 1,
    }
