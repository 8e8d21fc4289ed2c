from datetime import datetime


def timestamped_print(*args, **kwargs):
    now = datetime.now().strftime("[%Y-%m-%d %H:%M:%S]")
    print(now, *args, **kwargs)


def entity_print(entity_name, *args, **kwargs):
    timestamped_print(f"[{entity_name}]", *args, **kwargs)
