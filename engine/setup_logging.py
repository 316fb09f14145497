import logging
import sys
from pathlib import Path


def setup_logging(level="INFO", log_file=None):
    """
    Configure the root logger for the demo.
    - Messages always go to stdout.
    - When log_file is given they are also written there (parent dirs created).
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="w", encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s:%(lineno)d | %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=True,  # drop handlers from earlier calls so lines aren't duplicated
    )

    # numba's compiler chatter is noise at DEBUG
    logging.getLogger("numba").setLevel(logging.WARNING)
