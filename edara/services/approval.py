# edara/services/approval.py
"""
Resolución de la cadena de aprobación multinivel.

Cada departamento tiene un roster ordenado de admins (``department_admins``),
dividido en admins regulares y admins de compras. Un ticket guarda el nivel
que le toca en ``next_admin_order`` y, si es de compra, la fase dentro de ese
nivel en ``is_purchase_phase``.

- Ticket normal: aprueban los admins regulares del nivel actual.
- Ticket de compra: en cada nivel aprueban primero los regulares y después
  los admins de compras de ese mismo nivel. Si el nivel no tiene regulares,
  aprueban directamente los de compras. La prioridad se decide nivel por
  nivel, no "todos los regulares y luego todos los de compras".

Todas las funciones son puras: reciben el ticket y el roster del departamento
como dicts (tal como vienen de Mongo) y no tocan la base de datos.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple

Doc = Dict[str, Any]


def current_order(ticket: Doc) -> int:
    order = ticket.get("next_admin_order")
    return 0 if order is None else int(order)


def in_purchase_phase(ticket: Doc) -> bool:
    return bool(ticket.get("is_purchase_ticket") and ticket.get("is_purchase_phase"))


def _same_department(ticket: Doc, admins: Iterable[Doc]) -> List[Doc]:
    dept = ticket.get("department_id")
    return [a for a in admins if dept is None or a.get("department_id") == dept]


def _regular_at(admins: Iterable[Doc], order: int) -> List[Doc]:
    return [a for a in admins if not a.get("is_purchase_admin") and a.get("admin_order") == order]


def _purchase_at(admins: Iterable[Doc], order: int) -> List[Doc]:
    return [a for a in admins if a.get("is_purchase_admin") and a.get("admin_order") == order]


def _purchase_turn(ticket: Doc, admins: List[Doc]) -> bool:
    """En el nivel actual de un ticket de compra, ¿les toca a los admins de compras?"""
    return in_purchase_phase(ticket) or not _regular_at(admins, current_order(ticket))


def is_next_approver(ticket: Doc, viewer: Optional[Doc], department_admins: Iterable[Doc]) -> bool:
    """True si ``viewer`` (entrada del roster) puede aprobar el nivel actual del ticket."""
    if not viewer:
        return False
    dept = ticket.get("department_id")
    if dept is not None and viewer.get("department_id") not in (None, dept):
        return False
    if viewer.get("admin_order") != current_order(ticket):
        return False
    viewer_is_purchase = bool(viewer.get("is_purchase_admin"))

    if not ticket.get("is_purchase_ticket"):
        return not viewer_is_purchase
    return viewer_is_purchase == _purchase_turn(ticket, _same_department(ticket, department_admins))


def eligible_approvers(ticket: Doc, department_admins: Iterable[Doc]) -> List[Doc]:
    admins = _same_department(ticket, department_admins)
    order = current_order(ticket)
    if ticket.get("is_purchase_ticket") and _purchase_turn(ticket, admins):
        return _purchase_at(admins, order)
    return _regular_at(admins, order)


def is_stalled(ticket: Doc, department_admins: Iterable[Doc]) -> bool:
    """
    Ticket pendiente cuyo nivel (y fase) actual no tiene ningún admin elegible.
    Se reporta; no se corrige automáticamente.
    """
    if ticket.get("status") != "pending":
        return False
    return not eligible_approvers(ticket, department_admins)


def next_tier(ticket: Doc, department_admins: Iterable[Doc]) -> Optional[Tuple[int, bool]]:
    """
    Paso siguiente tras aprobar el nivel actual: ``(admin_order, is_purchase_phase)``,
    o None si el ticket queda totalmente aprobado.

    Un ticket de compra aprobado por los regulares de un nivel pasa a la fase
    de compras del mismo nivel si allí hay admins de compras. Los huecos de
    numeración se saltan.
    """
    admins = _same_department(ticket, department_admins)
    order = current_order(ticket)
    if ticket.get("is_purchase_ticket"):
        if not _purchase_turn(ticket, admins) and _purchase_at(admins, order):
            return order, True
    else:
        admins = [a for a in admins if not a.get("is_purchase_admin")]
    higher = sorted({int(a["admin_order"]) for a in admins if int(a.get("admin_order", 0)) > order})
    return (higher[0], False) if higher else None


def requires_cost_center(ticket: Doc, department_admins: Iterable[Doc]) -> bool:
    """Tickets de compra: exige centro de costo si algún aprobador elegible ahora lo marca."""
    if not ticket.get("is_purchase_ticket") or ticket.get("cost_center_id"):
        return False
    return any(a.get("requires_cost_center") for a in eligible_approvers(ticket, department_admins))


def viewer_records(user_id: str, department_admins: Iterable[Doc]) -> List[Doc]:
    return [a for a in department_admins if a.get("user_id") == user_id]


def can_user_approve(ticket: Doc, user_id: str, department_admins: Iterable[Doc]) -> bool:
    """Un usuario puede tener varias entradas en el roster (regular y de compras)."""
    admins = list(department_admins)
    return any(is_next_approver(ticket, rec, admins) for rec in viewer_records(user_id, _same_department(ticket, admins)))
