"""Plotly figures built from the presentation intermediates."""

from typing import Optional, Union

import numpy as np
import plotly.graph_objects as go

from rnaseq_explorer.presentation import (
    BarData,
    BoxplotData,
    HistogramData,
    ScatterData,
    VolcanoData
)
from rnaseq_explorer.projection import HeatmapData


STEEL_BLUE = '#4682B4'


def empty_figure(message: Optional[str] = None) -> go.Figure:
    """Blank figure shown while a view has nothing to render."""
    fig = go.Figure()
    fig.update_layout(
        template='plotly_white',
        xaxis=dict(visible=False),
        yaxis=dict(visible=False)
    )
    if message:
        fig.add_annotation(
            text=message,
            showarrow=False,
            xref='paper',
            yref='paper',
            x=0.5,
            y=0.5,
            font=dict(size=14, color='gray')
        )
    return fig


def create_variable_plot(data: Union[HistogramData, BarData]) -> go.Figure:
    """
    Histogram of a numeric sample variable or bar chart of a categorical one.

    Args:
        data: Output of ``presentation.variable_distribution``

    Returns:
        Plotly Figure object
    """
    fig = go.Figure()

    if isinstance(data, HistogramData):
        edges = np.asarray(data.edges)
        if edges.size > 1:
            fig.add_trace(go.Bar(
                x=(edges[:-1] + edges[1:]) / 2,
                y=data.counts,
                width=np.diff(edges),
                marker=dict(color=STEEL_BLUE, line=dict(color='black', width=1)),
                hovertemplate='%{x:.3g}: %{y}<extra></extra>'
            ))
    else:
        fig.add_trace(go.Bar(
            x=data.categories,
            y=data.counts,
            marker=dict(color=STEEL_BLUE, line=dict(color='black', width=1)),
            hovertemplate='%{x}: %{y}<extra></extra>'
        ))

    fig.update_layout(
        xaxis_title=data.variable,
        yaxis_title="count",
        bargap=0,
        template='plotly_white',
        showlegend=False
    )

    return fig


def create_heatmap(data: HeatmapData, title: str = "Filtered Gene Heatmap") -> go.Figure:
    """
    Create expression heatmap of row-standardized counts.

    Args:
        data: Output of ``projection.build_heatmap_data``
        title: Plot title

    Returns:
        Plotly Figure object
    """
    values = data.values
    fig = go.Figure(data=go.Heatmap(
        z=values.to_numpy(),
        x=[str(c) for c in values.columns],
        y=data.row_labels,
        colorscale='RdBu_r',
        zmid=0,
        colorbar=dict(title="Z-score"),
        hovertemplate='Gene: %{y}<br>Sample: %{x}<br>Z-score: %{z:.2f}<extra></extra>'
    ))

    fig.update_layout(
        title=title,
        xaxis_title="Samples",
        yaxis_title="Genes",
        template='plotly_white',
        height=max(400, len(data.row_labels) * 12),
        xaxis=dict(tickangle=-45),
        yaxis=dict(tickfont=dict(size=8), autorange='reversed')
    )

    return fig


def create_pca_plot(data: ScatterData, title: str = "PCA of Filtered Gene Counts") -> go.Figure:
    """Scatter of samples on the first two principal components."""
    fig = go.Figure(go.Scatter(
        x=[p.x for p in data.points],
        y=[p.y for p in data.points],
        mode='markers+text',
        text=[p.label for p in data.points],
        textposition='top center',
        marker=dict(color='blue', size=12, line=dict(width=1, color='white')),
        hovertemplate='<b>%{text}</b><br>PC1: %{x:.2f}<br>PC2: %{y:.2f}<extra></extra>'
    ))

    fig.update_layout(
        title=title,
        xaxis_title=data.x_label,
        yaxis_title=data.y_label,
        template='plotly_white',
        height=600,
        showlegend=False
    )

    return fig


def create_volcano_plot(data: VolcanoData, title: str = "Volcano Plot") -> go.Figure:
    """
    Create interactive volcano plot.

    Points are colored by ``padj`` below the threshold carried in ``data``.
    """
    color_map = {
        'significant': '#E74C3C',
        'not significant': '#95A5A6'
    }

    fig = go.Figure()

    for category, color in color_map.items():
        subset = [p for p in data.points if p.group == category]
        fig.add_trace(go.Scatter(
            x=[p.x for p in subset],
            y=[p.y for p in subset],
            mode='markers',
            name=f"padj < {data.padj_threshold}" if category == 'significant' else "Not significant",
            marker=dict(
                color=color,
                size=6,
                opacity=0.6 if category == 'not significant' else 0.8,
                line=dict(width=0)
            ),
            text=[p.label for p in subset],
            hovertemplate=(
                '<b>%{text}</b><br>' +
                'log2FC: %{x:.2f}<br>' +
                '-log10(p): %{y:.2f}<br>' +
                '<extra></extra>'
            )
        ))

    fig.update_layout(
        title=title,
        xaxis_title="log<sub>2</sub> Fold Change",
        yaxis_title="-log<sub>10</sub> (p-value)",
        hovermode='closest',
        template='plotly_white',
        height=600,
        showlegend=True
    )

    return fig


def create_gene_boxplot(data: BoxplotData) -> go.Figure:
    """Boxplot of a gene's expression per group."""
    fig = go.Figure()

    for group, values in data.groups.items():
        fig.add_trace(go.Box(
            y=values,
            name=group,
            boxpoints='outliers'
        ))

    fig.update_layout(
        title=data.title,
        xaxis_title=data.x_label,
        yaxis_title="Expression Level",
        template='plotly_white',
        xaxis=dict(tickangle=45),
        showlegend=True
    )

    return fig
