import os
import threading
import config

_frame_id = None

_SCOPE_FLAGS = {
    "PIPELINE": "LOG_PIPELINE",
    "SCHED": "LOG_SCHEDULER",
    "QUEUE": "LOG_QUEUE_STATE",
}


def set_frame(frame_id):
    global _frame_id
    _frame_id = frame_id


def enabled(scope):
    flag = _SCOPE_FLAGS.get(scope)
    if flag is None:
        return True
    return bool(getattr(config, flag, True))


def log(scope, msg, level="INFO"):
    if level == "INFO" and not enabled(scope):
        return
    pid = os.getpid()
    thread = threading.current_thread().name
    frame = _frame_id
    frame_tag = f" t{frame}" if frame is not None else ""
    text = f"[{level}{frame_tag} pid{pid} thr{thread} {scope}] {msg}"
    use_color = getattr(config, "LOG_COLOR", True) and os.getenv("NO_COLOR") is None
    if use_color:
        if level in ("WARN", "ERROR"):
            text = f"\x1b[31m{text}\x1b[0m"
        elif threading.current_thread() is not threading.main_thread():
            # Generation worker thread.
            text = f"\x1b[32m{text}\x1b[0m"
    print(text)
