"""Promise parts derived from a Helm chart.

Requests are rendered by the ``helm-resource-configure`` aspect, which
reads the chart's location from its environment.
"""

from __future__ import annotations

import yaml

from kratixcli.promise import Container, Pipeline, pipelines_to_unstructured

HELM_PIPELINE_NAME = "instance-configure"
HELM_CONTAINER_IMAGE = "ghcr.io/syntasso/kratix-cli/helm-resource-configure:v0.1.0"


def helm_env_vars(chart_url: str, chart_name: str = "", chart_version: str = "") -> list[dict[str, str]]:
    """Environment of the container that renders the chart."""
    env = [{"name": "CHART_URL", "value": chart_url}]
    if chart_name:
        env.append({"name": "CHART_NAME", "value": chart_name})
    if chart_version:
        env.append({"name": "CHART_VERSION", "value": chart_version})
    return env


def generate_helm_resource_configure_pipeline(
    chart_url: str, chart_name: str = "", chart_version: str = ""
) -> str:
    """The resource configure workflow, rendered as YAML."""
    container = Container(
        name=HELM_PIPELINE_NAME,
        image=HELM_CONTAINER_IMAGE,
        env=helm_env_vars(chart_url, chart_name, chart_version),
    )
    pipeline = Pipeline(name=HELM_PIPELINE_NAME, containers=[container])
    return yaml.safe_dump(pipelines_to_unstructured([pipeline]), default_flow_style=False, sort_keys=True)


def get_chart_name(chart_url: str, chart_name: str = "") -> str:
    """The chart to fetch: its name within a repository, else the URL itself."""
    return chart_name or chart_url


def helm_flags(chart_url: str, chart_name: str = "", chart_version: str = "") -> str:
    """The command-line flags recorded with the generated Promise."""
    flags = f"--chart-url {chart_url}"
    if chart_name:
        flags += f" --chart-name {chart_name}"
    if chart_version:
        flags += f" --chart-version {chart_version}"
    return flags