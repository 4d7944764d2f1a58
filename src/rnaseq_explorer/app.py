"""Main Dash application for the RNA-Seq explorer."""

import logging
import uuid

import dash
from dash import dash_table, dcc, html, Input, Output, State, callback_context
from dash.exceptions import PreventUpdate
import dash_bootstrap_components as dbc

from rnaseq_explorer.config import get_config
from rnaseq_explorer.exceptions import (
    DashboardError,
    InsufficientDataError,
    MissingRequiredInputError
)
from rnaseq_explorer.filtering import FilterCriteria
from rnaseq_explorer.presentation import (
    boxplot_data,
    format_counts_summary,
    format_sample_summary,
    pca_points,
    plottable_columns,
    table_rows,
    variable_distribution,
    volcano_points
)
from rnaseq_explorer.projection import (
    build_heatmap_data,
    compute_pca,
    summarize_counts,
    summarize_sample_info
)
from rnaseq_explorer.session import SessionRegistry
from rnaseq_explorer.visualizations import (
    create_gene_boxplot,
    create_heatmap,
    create_pca_plot,
    create_variable_plot,
    create_volcano_plot,
    empty_figure
)


# Initialize config
config = get_config()

# Configure logging
logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Initialize Dash app
app = dash.Dash(
    __name__,
    external_stylesheets=[dbc.themes.BOOTSTRAP],
    title=config.app_title,
    suppress_callback_exceptions=True
)

# One context per browser session, keyed by the id held in 'session-id'
sessions = SessionRegistry(config)

TABLE_PAGE_SIZE = 15

UPLOAD_STYLE = {
    'width': '100%',
    'height': '60px',
    'lineHeight': '60px',
    'borderWidth': '2px',
    'borderStyle': 'dashed',
    'borderRadius': '5px',
    'textAlign': 'center',
    'margin': '10px 0'
}


def upload_box(component_id, label):
    return dcc.Upload(
        id=component_id,
        children=html.Div(['Drag and Drop or ', html.A(label)]),
        style=UPLOAD_STYLE,
        accept=','.join(config.upload.allowed_extensions),
        max_size=config.upload.max_upload_bytes,
        multiple=False
    )


def data_table(component_id):
    return dash_table.DataTable(
        id=component_id,
        page_size=TABLE_PAGE_SIZE,
        sort_action='native',
        filter_action='native',
        style_table={'overflowX': 'auto'},
        style_cell={'fontSize': 12, 'textAlign': 'left'}
    )


def sample_info_tab():
    return dbc.Row([
        dbc.Col([
            dbc.Card([
                dbc.CardHeader(html.H5("Sample Information", className="mb-0")),
                dbc.CardBody([
                    html.Label("Upload Sample Information (CSV or TXT):", className="fw-bold"),
                    upload_box('upload-sample', 'Select Sample Information File'),
                    html.Div(id='sample-upload-status', className="mt-2")
                ])
            ])
        ], width=3),
        dbc.Col([
            dbc.Tabs([
                dbc.Tab(label="Summary", children=[
                    html.Pre(id='sample-summary', className="mt-3")
                ]),
                dbc.Tab(label="Table", children=[
                    html.Div(data_table('sample-table'), className="mt-3")
                ]),
                dbc.Tab(label="Plots", children=[
                    html.Label("Select Variable to Plot:", className="fw-bold mt-3"),
                    dcc.Dropdown(id='sample-plot-var', placeholder="Upload sample information first"),
                    dcc.Graph(id='sample-plot', figure=empty_figure())
                ])
            ])
        ], width=9)
    ], className="mt-3")


def counts_tab():
    defaults = config.filters
    return dbc.Row([
        dbc.Col([
            dbc.Card([
                dbc.CardHeader(html.H5("Counts Matrix", className="mb-0")),
                dbc.CardBody([
                    html.Label("Upload Counts Matrix (CSV or TXT):", className="fw-bold"),
                    upload_box('upload-counts', 'Select Count Matrix File'),
                    html.Div(id='counts-upload-status', className="mt-2"),

                    html.Hr(className="my-3"),

                    html.Label("Minimum Variance Percentile:", className="fw-bold"),
                    dcc.Slider(
                        id='variance-slider',
                        min=0,
                        max=100,
                        value=defaults.variance_percentile,
                        marks={0: '0', 50: '50', 100: '100'},
                        tooltip={'placement': 'bottom'}
                    ),
                    html.Label("Minimum Non-Zero Samples:", className="fw-bold mt-3"),
                    dcc.Slider(
                        id='nonzero-slider',
                        min=0,
                        max=100,
                        step=1,
                        value=defaults.min_nonzero,
                        marks={0: '0', 50: '50', 100: '100'},
                        tooltip={'placement': 'bottom'}
                    ),
                    dbc.Button(
                        "Apply Filters",
                        id="apply-filters-btn",
                        color="primary",
                        className="w-100 mt-3"
                    )
                ])
            ])
        ], width=3),
        dbc.Col([
            dbc.Tabs([
                dbc.Tab(label="Summary", children=[
                    html.Pre(id='counts-summary', className="mt-3")
                ]),
                dbc.Tab(label="Heatmap", children=[
                    dcc.Loading(dcc.Graph(id='heatmap-plot', figure=empty_figure()))
                ]),
                dbc.Tab(label="PCA", children=[
                    dcc.Loading(dcc.Graph(id='pca-plot', figure=empty_figure()))
                ])
            ])
        ], width=9)
    ], className="mt-3")


def de_tab():
    return dbc.Row([
        dbc.Col([
            dbc.Card([
                dbc.CardHeader(html.H5("Differential Expression", className="mb-0")),
                dbc.CardBody([
                    html.Label("Upload DE Results (CSV or TXT):", className="fw-bold"),
                    upload_box('upload-de', 'Select DE Results File'),
                    html.Div(id='de-upload-status', className="mt-2")
                ])
            ])
        ], width=3),
        dbc.Col([
            data_table('de-table'),
            dcc.Graph(id='volcano-plot', figure=empty_figure())
        ], width=9)
    ], className="mt-3")


def gene_expression_tab():
    return dbc.Row([
        dbc.Col([
            dbc.Card([
                dbc.CardHeader(html.H5("Gene Expression", className="mb-0")),
                dbc.CardBody([
                    html.Label("Upload Counts Matrix (CSV or TXT):", className="fw-bold"),
                    upload_box('upload-gene-counts', 'Select Count Matrix File'),
                    html.Div(id='gene-counts-status', className="mt-2"),

                    html.Label("Upload Sample Information (CSV or TXT):", className="fw-bold mt-3"),
                    upload_box('upload-gene-sample', 'Select Sample Information File'),
                    html.Div(id='gene-sample-status', className="mt-2"),

                    html.Hr(className="my-3"),

                    html.Label("Select Gene:", className="fw-bold"),
                    dcc.Dropdown(id='gene-dropdown', disabled=True),
                    html.Label("Select Grouping Variable:", className="fw-bold mt-3"),
                    dcc.Dropdown(id='grouping-dropdown', disabled=True),
                    dbc.Button(
                        "Generate Plot",
                        id="plot-gene-btn",
                        color="primary",
                        className="w-100 mt-3"
                    ),
                    html.Div(id='gene-plot-status', className="mt-3")
                ])
            ])
        ], width=3),
        dbc.Col([
            dcc.Graph(id='gene-plot', figure=empty_figure())
        ], width=9)
    ], className="mt-3")


def create_layout():
    """Create the main dashboard layout with a fresh session id."""
    return dbc.Container([
        dbc.Row([
            dbc.Col([
                html.H1(config.app_title, className="text-primary mb-2"),
                html.H4("Explore sample information, counts and differential expression",
                        className="text-secondary mb-4"),
                html.Hr()
            ])
        ]),

        dbc.Tabs([
            dbc.Tab(sample_info_tab(), label="Sample Information"),
            dbc.Tab(counts_tab(), label="Counts Matrix"),
            dbc.Tab(de_tab(), label="Differential Expression"),
            dbc.Tab(gene_expression_tab(), label="Gene Expression")
        ]),

        dcc.Store(id='session-id', data=uuid.uuid4().hex)

    ], fluid=True, className="py-4")


# Called on every page load so each browser session gets its own id
app.layout = create_layout


def error_alert(e: Exception):
    return dbc.Alert(f"Error: {str(e)}", color="danger")


def validation_alert(result, success_message):
    """Status message for an upload, with errors and warnings listed."""
    if result.valid:
        msg = dbc.Alert([
            html.Strong(f"✓ {success_message}")
        ], color="success")
    else:
        msg = dbc.Alert([
            html.Strong("✗ Validation errors:"),
            html.Ul([html.Li(err) for err in result.errors])
        ], color="danger")

    if result.warnings:
        msg = html.Div([
            msg,
            dbc.Alert([
                html.Strong("⚠ Warnings:"),
                html.Ul([html.Li(w.message) for w in result.warnings])
            ], color="warning")
        ])
    return msg


def as_table(dataset, index_label=None):
    table = table_rows(dataset, index_label=index_label)
    columns = [{'name': c, 'id': c} for c in table.columns]
    return table.rows, columns


# Callbacks

@app.callback(
    [Output('sample-upload-status', 'children'),
     Output('sample-summary', 'children'),
     Output('sample-table', 'data'),
     Output('sample-table', 'columns'),
     Output('sample-plot-var', 'options'),
     Output('sample-plot-var', 'value')],
    Input('upload-sample', 'contents'),
    State('upload-sample', 'filename'),
    State('session-id', 'data')
)
def upload_sample_info(contents, filename, session_id):
    """Handle sample information upload."""
    if contents is None:
        raise PreventUpdate

    try:
        session = sessions.get(session_id)
        dataset, result = session.load_sample_info(contents, filename)

        status = validation_alert(
            result, f"{filename}: {len(dataset.frame)} rows | {len(dataset.columns)} columns"
        )
        if not result.valid:
            return status, "", [], [], [], None

        rows, columns = as_table(dataset)
        options = [{'label': c, 'value': c}
                   for c in plottable_columns(dataset, config.identifiers.hidden_columns)]
        first = options[0]['value'] if options else None
        summary = format_sample_summary(summarize_sample_info(dataset))
    except MissingRequiredInputError:
        raise PreventUpdate
    except DashboardError as e:
        logger.error(f"Error uploading sample information: {e}")
        return error_alert(e), "", [], [], [], None
    except Exception as e:
        logger.error(f"Error uploading sample information: {e}", exc_info=True)
        return error_alert(e), "", [], [], [], None

    return status, summary, rows, columns, options, first


@app.callback(
    Output('sample-plot', 'figure'),
    Input('sample-plot-var', 'value'),
    State('session-id', 'data')
)
def update_sample_plot(variable, session_id):
    """Histogram or bar chart of the selected sample variable."""
    if not variable:
        return empty_figure()

    try:
        session = sessions.get(session_id)
        dataset = session.require(session.sample_info, "sample information")
        return create_variable_plot(variable_distribution(dataset, variable))
    except MissingRequiredInputError:
        raise PreventUpdate
    except DashboardError as e:
        logger.error(f"Error plotting {variable}: {e}")
        return empty_figure(str(e))
    except Exception as e:
        logger.error(f"Error plotting {variable}: {e}", exc_info=True)
        return empty_figure(f"Error: {e}")


@app.callback(
    [Output('counts-upload-status', 'children'),
     Output('counts-summary', 'children'),
     Output('heatmap-plot', 'figure'),
     Output('pca-plot', 'figure')],
    Input('upload-counts', 'contents'),
    Input('apply-filters-btn', 'n_clicks'),
    State('upload-counts', 'filename'),
    State('variance-slider', 'value'),
    State('nonzero-slider', 'value'),
    State('session-id', 'data')
)
def update_counts(contents, n_clicks, filename, variance_percentile, min_nonzero, session_id):
    """Load a counts matrix, or filter the loaded one when Apply Filters is pressed."""
    triggered = callback_context.triggered_id

    try:
        session = sessions.get(session_id)

        if triggered == 'upload-counts':
            if contents is None:
                raise PreventUpdate
            dataset, result = session.load_counts(contents, filename)
            summary = ""
            if result.valid:
                summary = format_counts_summary(summarize_counts(dataset))
            status = validation_alert(
                result, f"{filename}: {dataset.shape[0]:,} genes | {len(dataset.numeric_columns)} samples"
            )
            return status, summary, empty_figure(), empty_figure()

        if triggered != 'apply-filters-btn' or not n_clicks:
            raise PreventUpdate

        criteria = FilterCriteria(
            variance_percentile=variance_percentile,
            min_nonzero=min_nonzero
        )
        result = session.apply_filters(criteria)
        summary, heatmap, pca = filtered_views(result)
    except MissingRequiredInputError:
        raise PreventUpdate
    except DashboardError as e:
        logger.error(f"Error in counts matrix view: {e}")
        return error_alert(e), "", empty_figure(), empty_figure()
    except Exception as e:
        logger.error(f"Error in counts matrix view: {e}", exc_info=True)
        return error_alert(e), "", empty_figure(), empty_figure()

    return dash.no_update, summary, heatmap, pca


def filtered_views(result):
    """Summary text, heatmap and PCA figures for a filter result."""
    summary = format_counts_summary(summarize_counts(result.matrix, result))

    try:
        heatmap = create_heatmap(build_heatmap_data(
            result.matrix,
            top_n=config.filters.heatmap_rows,
            cluster=config.filters.cluster_heatmap
        ))
    except InsufficientDataError as e:
        heatmap = empty_figure(str(e))

    try:
        pca = create_pca_plot(pca_points(compute_pca(result.matrix)))
    except InsufficientDataError as e:
        pca = empty_figure(str(e))

    return summary, heatmap, pca


@app.callback(
    [Output('de-upload-status', 'children'),
     Output('de-table', 'data'),
     Output('de-table', 'columns'),
     Output('volcano-plot', 'figure')],
    Input('upload-de', 'contents'),
    State('upload-de', 'filename'),
    State('session-id', 'data')
)
def upload_de_results(contents, filename, session_id):
    """Handle DE results upload."""
    if contents is None:
        raise PreventUpdate

    try:
        session = sessions.get(session_id)
        dataset, result = session.load_de_results(contents, filename)

        n_sig = int(dataset.frame['significant'].sum())
        status = validation_alert(
            result,
            f"{filename}: {len(dataset.frame):,} genes | "
            f"{n_sig} with padj < {config.de.padj_threshold}"
        )
        rows, columns = as_table(dataset, index_label=dataset.frame.index.name or 'gene')
        volcano = create_volcano_plot(volcano_points(dataset, config.de.padj_threshold))
    except MissingRequiredInputError:
        raise PreventUpdate
    except DashboardError as e:
        logger.error(f"Error uploading DE results: {e}")
        return error_alert(e), [], [], empty_figure()
    except Exception as e:
        logger.error(f"Error uploading DE results: {e}", exc_info=True)
        return error_alert(e), [], [], empty_figure()

    return status, rows, columns, volcano


@app.callback(
    [Output('gene-counts-status', 'children'),
     Output('gene-dropdown', 'options'),
     Output('gene-dropdown', 'disabled')],
    Input('upload-gene-counts', 'contents'),
    State('upload-gene-counts', 'filename'),
    State('session-id', 'data')
)
def upload_gene_counts(contents, filename, session_id):
    """Load and clean the counts matrix for the gene expression view."""
    if contents is None:
        raise PreventUpdate

    try:
        counts = sessions.get(session_id).load_gene_counts(contents, filename)
        options = [{'label': counts.display_label(g), 'value': g} for g in counts.row_ids]
    except MissingRequiredInputError:
        raise PreventUpdate
    except DashboardError as e:
        logger.error(f"Error uploading counts matrix: {e}")
        return error_alert(e), [], True
    except Exception as e:
        logger.error(f"Error uploading counts matrix: {e}", exc_info=True)
        return error_alert(e), [], True

    msg = dbc.Alert(f"✓ {filename}: {len(options):,} genes", color="success")
    return msg, options, False


@app.callback(
    [Output('gene-sample-status', 'children'),
     Output('grouping-dropdown', 'options'),
     Output('grouping-dropdown', 'disabled')],
    Input('upload-gene-sample', 'contents'),
    State('upload-gene-sample', 'filename'),
    State('session-id', 'data')
)
def upload_gene_sample_info(contents, filename, session_id):
    """Load and clean the sample information for the gene expression view."""
    if contents is None:
        raise PreventUpdate

    try:
        sample_info = sessions.get(session_id).load_gene_sample_info(contents, filename)
    except MissingRequiredInputError:
        raise PreventUpdate
    except DashboardError as e:
        logger.error(f"Error uploading sample information: {e}")
        return error_alert(e), [], True
    except Exception as e:
        logger.error(f"Error uploading sample information: {e}", exc_info=True)
        return error_alert(e), [], True

    options = [{'label': c, 'value': c} for c in sample_info.columns]
    msg = dbc.Alert(f"✓ {filename}: {len(sample_info.frame)} rows", color="success")
    return msg, options, False


@app.callback(
    [Output('gene-plot-status', 'children'),
     Output('gene-plot', 'figure')],
    Input('plot-gene-btn', 'n_clicks'),
    State('gene-dropdown', 'value'),
    State('grouping-dropdown', 'value'),
    State('session-id', 'data'),
    prevent_initial_call=True
)
def plot_gene(n_clicks, gene, grouping_variable, session_id):
    """Boxplot of the selected gene; a failed lookup keeps the previous plot."""
    if not n_clicks:
        raise PreventUpdate

    try:
        profile = sessions.get(session_id).plot_gene(gene, grouping_variable)
        figure = create_gene_boxplot(boxplot_data(profile))
    except MissingRequiredInputError:
        raise PreventUpdate
    except DashboardError as e:
        logger.error(f"Error plotting gene {gene}: {e}")
        return error_alert(e), dash.no_update
    except Exception as e:
        logger.error(f"Error plotting gene {gene}: {e}", exc_info=True)
        return error_alert(e), dash.no_update

    return "", figure


def main():
    """Run the Dash application."""
    app.run(
        debug=config.debug,
        host=config.host,
        port=config.port
    )


if __name__ == '__main__':
    main()
