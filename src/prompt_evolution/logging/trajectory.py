from __future__ import annotations

import html as html_module
import json
from pathlib import Path

_CHART_WIDTH = 720
_CHART_HEIGHT = 220
_PAD = 30


def generate_trajectory_html(run_dir: Path) -> Path:
    """Generate a self-contained HTML view of score progression and round decisions."""
    config = json.loads((run_dir / "config.json").read_text())
    state = json.loads((run_dir / "state.json").read_text())
    history = state.get("history", [])

    baseline = state.get("baseline_score") or 1.0
    final = state.get("current_score") or baseline

    chart_html = _build_score_chart(baseline, history)
    timeline_html = _build_round_timeline(history)

    html = f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Optimization Trajectory: {html_module.escape(config.get('domain', 'unknown'))}</title>
<style>
    body {{ font-family: system-ui, sans-serif; background: #1a1a2e; color: #eee; margin: 2rem; }}
    h1 {{ text-align: center; color: #e94560; }}
    h2 {{ text-align: center; color: #aaa; font-weight: normal; }}
    h3.section {{ color: #e94560; margin-top: 2.5rem; margin-bottom: 1rem; text-align: center; }}
    .chart {{ display: flex; justify-content: center; }}
    .chart svg {{ background: #16213e; border-radius: 12px; }}
    .timeline {{ max-width: 900px; margin: 1rem auto; }}
    .timeline-entry {{
        background: #16213e; border-radius: 8px; padding: 0.75rem 1rem;
        margin-bottom: 0.5rem; border-left: 4px solid #444;
    }}
    .timeline-entry.keep {{ border-left-color: #27ae60; }}
    .timeline-entry.discard {{ border-left-color: #7f8c8d; }}
    .timeline-entry.error {{ border-left-color: #c0392b; }}
    .timeline-header {{
        display: flex; justify-content: space-between; align-items: center;
        margin-bottom: 0.3rem;
    }}
    .timeline-round {{ font-weight: bold; font-size: 0.85rem; }}
    .timeline-badge {{ font-size: 0.75rem; padding: 2px 8px; border-radius: 4px; font-weight: bold; }}
    .badge-keep {{ background: #27ae60; color: #fff; }}
    .badge-discard {{ background: #7f8c8d; color: #fff; }}
    .badge-error {{ background: #c0392b; color: #fff; }}
    .timeline-detail {{ font-size: 0.8rem; color: #aaa; line-height: 1.4; }}
</style>
</head>
<body>
<h1>Optimization Trajectory</h1>
<h2>{html_module.escape(config.get('domain', ''))}: {baseline:.2f} &rarr; {final:.2f} over {len(history)} rounds</h2>

<h3 class="section">Score Progression</h3>
<div class="chart">
{chart_html}
</div>

<h3 class="section">Rounds</h3>
{timeline_html}
</body>
</html>"""

    out_path = run_dir / "trajectory.html"
    out_path.write_text(html)
    return out_path


def _build_score_chart(baseline: float, history: list[dict]) -> str:
    # Current score after each round, starting from the baseline.
    points = [baseline]
    for entry in history:
        points.append(entry["new_score"] if entry["decision"] == "keep" else points[-1])

    low = min(points) - 0.05
    high = max(points) + 0.05
    span = high - low
    step = (_CHART_WIDTH - 2 * _PAD) / max(len(points) - 1, 1)

    coords = []
    for i, value in enumerate(points):
        x = _PAD + i * step
        y = _CHART_HEIGHT - _PAD - (value - low) / span * (_CHART_HEIGHT - 2 * _PAD)
        coords.append((x, y))

    polyline = " ".join(f"{x:.1f},{y:.1f}" for x, y in coords)
    dots = "".join(
        f'<circle cx="{x:.1f}" cy="{y:.1f}" r="3" fill="#e94560"><title>{points[i]:.3f}</title></circle>'
        for i, (x, y) in enumerate(coords)
    )
    return (
        f'<svg width="{_CHART_WIDTH}" height="{_CHART_HEIGHT}" xmlns="http://www.w3.org/2000/svg">'
        f'<text x="{_PAD}" y="18" fill="#aaa" font-size="11">{high:.2f}</text>'
        f'<text x="{_PAD}" y="{_CHART_HEIGHT - 8}" fill="#aaa" font-size="11">{low:.2f}</text>'
        f'<polyline points="{polyline}" fill="none" stroke="#27ae60" stroke-width="2"/>'
        f"{dots}</svg>"
    )


def _build_round_timeline(history: list[dict]) -> str:
    if not history:
        return '<div class="timeline"><p style="text-align:center;color:#aaa;">No rounds recorded.</p></div>'
    entries = ""
    for entry in history:
        reason = entry.get("reason", "")
        if entry["decision"] == "keep":
            css_class, badge = "keep", "Kept"
        elif reason in ("edit_failed", "generation_failed"):
            css_class, badge = "error", reason.replace("_", " ").capitalize()
        else:
            css_class, badge = "discard", "Discarded"

        mutation = entry["mutation"]
        if entry.get("new_score") is not None:
            scores = f"{entry['previous_score']:.2f} &rarr; {entry['new_score']:.2f} ({entry['improvement']:+.3f})"
        else:
            scores = html_module.escape(entry.get("error") or "not scored")
        entries += f"""
        <div class="timeline-entry {css_class}">
            <div class="timeline-header">
                <span class="timeline-round">Round {entry['round']}: {html_module.escape(mutation['name'])}</span>
                <span class="timeline-badge badge-{css_class}">{badge}</span>
            </div>
            <div class="timeline-detail">{html_module.escape(mutation.get('description', ''))}<br>{scores}</div>
        </div>
        """
    return f'<div class="timeline">{entries}</div>'
