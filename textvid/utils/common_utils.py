import math


def round_half_up(value: float) -> int:
    """Rounds to the nearest integer, ties upward (``2.5 -> 3``)."""
    return math.floor(value + 0.5)


def display_elapsed_time(elapsed_time: float, _format: str = "long") -> str:
    """
    Returns the elapsed time in seconds in long or short format.

    Arguments:
        elapsed_time (float): Elapsed time in seconds.
        _format (str, optional): Format of the elapsed time
            ('long' or 'short'), by default 'long'.

    Returns:
        str: Formatted elapsed time.
    """
    minutes, seconds = divmod(elapsed_time, 60)
    if _format == "long":
        if minutes:
            return f"{int(minutes)} min {seconds:.2f} seconds"
        return f"{seconds:.2f} seconds"
    if minutes:
        return f"{int(minutes)}m{seconds:05.2f}s"
    return f"{seconds:.2f}s"
