from ..pins import Pin, PinAlreadyExists, PinStoreError, ResourceType, extract_id
from ..response import ErrorKind, PayloadKind, Response
from . import common
from .common import handler


def parse_tags(tags):
    """Comma-separated string (or a list already) to a clean tag list."""
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return [t.strip() for t in tags if t and t.strip()]


@handler
def pin_add(resource_type, url_or_id, alias, tags=None):
    try:
        rtype = ResourceType.parse(resource_type)
    except ValueError as e:
        return Response.err(400, str(e), ErrorKind.VALIDATION)
    if not alias:
        return Response.err(400, "Pin alias must not be empty", ErrorKind.VALIDATION)

    pin = Pin(rtype, extract_id(url_or_id), alias, parse_tags(tags))
    store = common.open_pin_store()
    try:
        store.add(pin)
    except PinAlreadyExists as e:
        return Response.err_with_details(400, "Failed to add pin", ErrorKind.VALIDATION, str(e))
    except PinStoreError as e:
        return Response.err_with_details(500, "Failed to add pin", ErrorKind.STORAGE, str(e))
    return Response.success_with_payload(201, "Pin added", pin.summary())


@handler
def pin_remove(alias_or_id):
    store = common.open_pin_store()
    try:
        removed = store.remove(alias_or_id)
    except PinStoreError as e:
        return Response.err_with_details(
            404, "Failed to remove pin", ErrorKind.NOT_FOUND, str(e)
        )
    return Response.success_with_payload(
        200,
        "Pin removed",
        {"type": removed.resource_type.value, "id": removed.id, "alias": removed.alias},
    )


@handler
def pin_list(filter_type=None):
    rtype = None
    if filter_type:
        try:
            rtype = ResourceType.parse(filter_type)
        except ValueError as e:
            return Response.err(400, str(e), ErrorKind.VALIDATION)
    store = common.open_pin_store()
    pins = [p.summary() for p in store.list(rtype)]
    return Response.success_typed(200, f"{len(pins)} pin(s)", PayloadKind.PINS, {"pins": pins})
