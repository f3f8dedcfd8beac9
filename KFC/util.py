import re
import time
from datetime import datetime

ANSI_ESCAPE = re.compile(r'\x1B\[[0-9;]*m')


def strip_ansi_codes(text):
    return ANSI_ESCAPE.sub('', text)


def now_ms():
    return int(time.time() * 1000)


def format_time_string(timestamp_ms=None):
    # HH:MM:SS.mmm
    moment = datetime.now() if timestamp_ms is None else datetime.fromtimestamp(timestamp_ms / 1000)
    return moment.strftime('%H:%M:%S.') + f"{moment.microsecond // 1000:03d}"
