STATUSES = ("success", "skipped", "error")


def build_summary(results, run_id, time_utc):
    totals = {s: 0 for s in STATUSES}
    updated = 0
    failed_ids = []

    for r in results:
        status = r.get("status")
        if status in totals:
            totals[status] += 1
        else:
            totals["error"] += 1
        if status == "success" and r.get("updated"):
            updated += 1
        if status not in ("success", "skipped"):
            failed_ids.append(r.get("product_id"))

    return {
        "run_id": run_id,
        "time_utc": time_utc,
        "products": len(results),
        "updated": updated,
        "totals": totals,
        "failed_ids": failed_ids,
    }
