DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

def normalize_pagination(page_raw, page_size_raw):
    try:
        page = int(page_raw) if page_raw is not None else 1
        page_size = int(page_size_raw) if page_size_raw is not None else DEFAULT_PAGE_SIZE
    except ValueError:
        raise ValueError('page/page_size must be int')
    page = max(1, page)
    page_size = max(1, min(page_size, MAX_PAGE_SIZE))
    return page, page_size
