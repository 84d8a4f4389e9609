"""Ví dụ: dùng service layer (không qua Flask).

Start, end, then correct the end time through the correction flow.
"""

from datetime import datetime

from src.attendance_ledger.attendance_ledger.common.datetime_utils import FixedClock
from src.attendance_ledger.attendance_ledger.container import build_container


def main():
    clock = FixedClock(datetime(2024, 1, 15, 9, 0))
    container = build_container(backend="memory", clock=clock)
    user = container.user_service.resolve("demo-user", "Demo")

    container.attendance_service.start_work(user.user_id)
    clock.advance(hours=8)
    print(container.attendance_service.end_work(user.user_id).message)

    flows = container.correction_service
    step = flows.invoke(user.user_id)
    step = flows.choose_action(step.session_id, user.user_id, "edit")
    end_item = step.ledger.items[-1]
    step = flows.pick_target(step.session_id, user.user_id, end_item.selection_key)
    step = flows.submit_time(step.session_id, user.user_id, "16:30")
    print(step.pending.description)
    flows.confirm(step.session_id, user.user_id)

    print(container.report_service.daily(user.user_id).total_hours)


if __name__ == "__main__":
    main()
