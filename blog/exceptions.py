class CatalogError(Exception):
    """Base class for errors raised by the blog services."""

    def __init__(self, msg: str = "catalog error"):
        super().__init__(msg)
        self.msg = msg

    def __str__(self):
        return self.msg


class PersistenceFailure(CatalogError):
    """The database rejected a write (constraint violation, lost connection...)."""

    def __init__(self, msg: str = "the record could not be saved"):
        super().__init__(msg)


class ConcurrentUpdateError(PersistenceFailure):
    """The row changed since it was read; the caller should reload and retry."""

    def __init__(self, msg: str = "the article was modified by another request"):
        super().__init__(msg)


class InvalidImageError(CatalogError):
    def __init__(self, msg: str = "unsupported image file"):
        super().__init__(msg)


class UnknownReferenceError(CatalogError):
    """A submitted category/user id does not point at an existing row."""

    def __init__(self, msg: str = "referenced record does not exist"):
        super().__init__(msg)
