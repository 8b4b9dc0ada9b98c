"""Print a JSON snapshot of database pool counters and catalog size."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from sqlalchemy import func, select

from learnpath.db.models import CourseModel, StudentProfileModel
from learnpath.db.monitoring import get_pool_snapshot
from learnpath.db.session import get_engine, session_scope

LOGGER = logging.getLogger("learnpath.db_metrics")


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        engine = get_engine()
        with session_scope(commit=False) as session:
            active_courses = session.execute(
                select(func.count()).select_from(CourseModel).where(CourseModel.status == "active")
            ).scalar_one()
            planned_students = session.execute(
                select(func.count())
                .select_from(StudentProfileModel)
                .where(StudentProfileModel.learning_path.is_not(None))
            ).scalar_one()
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "pool": get_pool_snapshot(engine),
            "active_courses": active_courses,
            "students_with_plans": planned_students,
        }
        print(json.dumps(payload))
        return 0
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Failed to collect database metrics: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
