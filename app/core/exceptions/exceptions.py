class AppError(Exception):
    """Base class for all application-level errors."""
    pass


class DomainError(AppError):
    """Base for domain logic errors."""
    pass

class InvalidFilterError(DomainError):
    def __init__(self, name: str, value):
        self.name = name
        self.value = value
        self.message = f"Filter '{name}' has an invalid value: {value}"
        super().__init__(self.message)

class InvalidPaginationError(DomainError):
    def __init__(self, page, per_page):
        self.page = page
        self.per_page = per_page
        self.message = f"Invalid pagination params: page={page}, per_page={per_page}"
        super().__init__(self.message)

class ParsingError(DomainError):
    def __init__(self, data) -> None:
        self.message = f"Could't parse data: {data}"
        super().__init__(self.message)

class CorruptCacheEntryError(ParsingError):
    def __init__(self, key: str, data) -> None:
        self.key = key
        super().__init__(data)
        self.message = f"Corrupt cache entry '{key}': {self.message}"
        self.args = (self.message,)



class InfrastructureError(AppError):
    """Base for infrastructure-related errors (DB, cache, etc)."""
    pass

class DatabaseConnectionError(InfrastructureError):
    def __init__(self, db_name: str):
        self.message = f"Could not connect to database '{db_name}'"
        super().__init__(self.message)

class CacheUnavailableError(InfrastructureError):
    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.message = f"Cache unavailable during '{operation}': {detail}"
        super().__init__(self.message)
