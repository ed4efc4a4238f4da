"""Infrastructure failure shared across components."""


class UnexpectedError(Exception):
    """
    An infrastructure fault: storage, hashing pool, or downstream email API.

    Always raised with the original exception chained (`raise ... from e`).
    The message is for logs only; clients see a generic 500.
    """
