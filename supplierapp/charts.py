"""Plotly figures for the analytics page, rendered as embeddable HTML fragments."""
import plotly.graph_objects as go

from .analytics import chronological

STATUS_COLORS = {
    "draft": "#94a3b8",
    "preparing": "#2563eb",
    "shipped": "#f59e0b",
    "delivered": "#10b981",
    "cancelled": "#ef4444",
}

CHART_TYPES = ("line", "bar")


def _layout(fig, title, theme="light"):
    fig.update_layout(
        title=title,
        template="plotly_dark" if theme == "dark" else "plotly_white",
        margin=dict(l=40, r=20, t=50, b=40),
        legend=dict(orientation="h", y=-0.2),
        height=360,
    )
    return fig


def to_fragment(fig):
    return fig.to_html(full_html=False, include_plotlyjs="cdn")


def trend_figure(trends, chart_type="line", theme="light"):
    """Monthly contracts, deliveries and items, oldest month on the left."""
    rows = chronological(trends)
    labels = [t.month_label for t in rows]
    series = (
        ("Contracts", [t.contract_count for t in rows]),
        ("Delivered", [t.delivered_count for t in rows]),
        ("Items", [t.total_items for t in rows]),
    )
    fig = go.Figure()
    for name, values in series:
        if chart_type == "bar":
            fig.add_trace(go.Bar(x=labels, y=values, name=name))
        else:
            fig.add_trace(go.Scatter(x=labels, y=values, name=name, mode="lines+markers"))
    return _layout(fig, "Monthly Trends", theme)


def status_figure(distribution, theme="light"):
    rows = [d for d in distribution if d.count > 0]
    fig = go.Figure(go.Pie(
        labels=[d.status.title() for d in rows],
        values=[d.count for d in rows],
        marker=dict(colors=[STATUS_COLORS.get(d.status, "#64748b") for d in rows]),
        hole=0.4,
        sort=False,
    ))
    return _layout(fig, "Status Distribution", theme)


def efficiency_figure(summary, theme="light"):
    names = ["Total Items", "Total Weight (kg)", "Avg Items per Box", "Avg Weight per Contract (kg)"]
    values = [
        summary.total_items_shipped,
        round(summary.total_weight_shipped, 2),
        round(summary.avg_items_per_box, 2),
        round(summary.avg_weight_per_contract, 2),
    ]
    fig = go.Figure(go.Bar(x=names, y=values, marker_color=["#2563eb", "#10b981", "#f59e0b", "#8b5cf6"]))
    return _layout(fig, "Shipping Efficiency", theme)


def activity_figure(weeks, theme="light"):
    rows = chronological(weeks)
    labels = [w.week_label for w in rows]
    fig = go.Figure()
    fig.add_trace(go.Bar(x=labels, y=[w.activity_count for w in rows], name="Actions"))
    fig.add_trace(go.Scatter(x=labels, y=[w.affected_contracts for w in rows],
                             name="Contracts touched", mode="lines+markers"))
    return _layout(fig, "Weekly Activity", theme)
