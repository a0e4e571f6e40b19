"""Query helpers shared by the custom repositories."""

PAGE_SIZE = 200


def fetch_all(query, page_size: int = PAGE_SIZE) -> list:
    """Drain a Protean queryset page by page.

    Querysets are paginated; a bare ``.all()`` returns only the first page.
    """
    items = []
    offset = 0
    while True:
        result = query.offset(offset).limit(page_size).all()
        items.extend(result.items)
        offset += page_size
        if not result.items or offset >= result.total:
            return items
