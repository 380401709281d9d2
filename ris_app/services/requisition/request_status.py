from typing import Iterable, Optional, Sequence, Union
from ris_app.models.shared.enums import RequestStatus


def fold_request_status(line_statuses: Iterable[RequestStatus]) -> RequestStatus:
    """Overall request status from its line statuses.

    Pending while any line is pending; once every line is resolved the request
    is approved if at least one line was approved, otherwise rejected.
    """
    statuses = [RequestStatus(status) for status in line_statuses]
    if not statuses or RequestStatus.PENDING in statuses:
        return RequestStatus.PENDING
    if RequestStatus.APPROVED in statuses:
        return RequestStatus.APPROVED
    return RequestStatus.REJECTED


def has_approved_line(line_statuses: Iterable[RequestStatus]) -> bool:
    return any(RequestStatus(status) == RequestStatus.APPROVED for status in line_statuses)


def locate_line(lines: Sequence, line_ref: Union[str, int]):
    """Find a request line by its id, falling back to a zero-based position.

    The positional form is kept for older clients that address lines by their
    index in the request; new clients should always send the line id.
    """
    ref = str(line_ref).strip()

    for line in lines:
        if str(line.id) == ref:
            return line

    index = _parse_index(ref)
    if index is not None and 0 <= index < len(lines):
        return sorted(lines, key=lambda line: line.position)[index]
    return None


def _parse_index(ref: str) -> Optional[int]:
    try:
        return int(ref)
    except ValueError:
        return None
