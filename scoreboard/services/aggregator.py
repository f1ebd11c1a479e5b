from scoreboard.schemas.ledger import Number
from scoreboard.services.ledger import LedgerStore


def totals_by_group(store: LedgerStore) -> dict[str, Number]:
    totals: dict[str, Number] = {group.id: 0 for group in store.groups}
    for tx in store.transactions:
        if tx.group_id in totals:
            totals[tx.group_id] += tx.delta
    return totals


def totals_by_student(store: LedgerStore) -> dict[str, Number]:
    totals: dict[str, Number] = {student.id: 0 for student in store.students}
    for tx in store.transactions:
        if tx.student_id in totals:
            totals[tx.student_id] += tx.delta
    return totals
