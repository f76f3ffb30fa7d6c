from .logger import configure_logging, get_logger
from .common_utils import display_elapsed_time, round_half_up
from .subtitles import write_subtitles
from .timeline_utils import print_timeline, save_timeline_to_csv
