import json
import os
from glob import glob

REPORT_PREFIX = "run__"


def write_json(path, data):
    tmp = path + ".tmp"
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    os.replace(tmp, path)


def _report_glob(report_dir):
    return os.path.join(report_dir, f"{REPORT_PREFIX}*.json")


def save_report(report_dir, report):
    run_id = report["run_id"]
    fn = os.path.join(report_dir, f"{REPORT_PREFIX}{run_id}.json")
    write_json(fn, report)
    return fn


def load_latest_report(report_dir):
    files = sorted(glob(_report_glob(report_dir)))
    if not files:
        return None
    with open(files[-1], "r", encoding="utf-8") as f:
        return json.load(f)


def prune_reports(report_dir, keep=40):
    """Delete all but the newest ``keep`` run reports. Returns the removed paths."""
    files = sorted(glob(_report_glob(report_dir)))
    to_delete = files[:-keep] if keep > 0 else files
    removed = []
    for f in to_delete:
        try:
            os.remove(f)
            removed.append(f)
        except FileNotFoundError:
            continue
    return removed
