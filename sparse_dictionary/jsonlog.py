import json, sys, time

def _builtin(value):
    # numpy scalars and the like
    return value.item() if hasattr(value, "item") else str(value)

def log(event: str, stream=None, **fields):
    rec = {"ts": time.time(), "event": event}
    rec.update(fields)
    out = stream if stream is not None else sys.stdout
    out.write(json.dumps(rec, default=_builtin) + "\n")
    out.flush()
