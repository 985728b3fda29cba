from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Iterable, List, Sequence

from jinja2 import Environment, select_autoescape

from .policy import RunResult
from .types import Dep


REPORT_FORMATS = ("text", "csv", "json", "markdown", "md", "html")

env = Environment(autoescape=select_autoescape(["html", "xml"]))


def sort_dependencies(deps: Sequence[Dep], by_license: bool = False) -> List[Dep]:
    if by_license:
        return sorted(deps, key=lambda dep: (dep.license.identifier, dep.name.lower()))
    return sorted(deps, key=lambda dep: dep.name.lower())


def _dependency_rows(deps: Iterable[Dep]) -> Iterable[dict]:
    for dep in deps:
        yield {
            "name": dep.name,
            "license": dep.license.identifier,
            "license_name": dep.license.name,
            "category": dep.license.category.value,
        }


def render_text(deps: Sequence[Dep]) -> str:
    rows = list(_dependency_rows(deps))
    name_width = max([len("Name")] + [len(row["name"]) for row in rows])
    license_width = max([len("License")] + [len(row["license"]) for row in rows])
    lines = [f"{'Name':<{name_width}}  {'License':<{license_width}}  Description"]
    for row in rows:
        lines.append(f"{row['name']:<{name_width}}  {row['license']:<{license_width}}  {row['license_name']}")
    return "\n".join(lines)


def render_csv(deps: Sequence[Dep]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer, fieldnames=["name", "license", "license_name", "category"], lineterminator="\n"
    )
    writer.writeheader()
    writer.writerows(_dependency_rows(deps))
    return buffer.getvalue()


def render_json(deps: Sequence[Dep], result: RunResult) -> str:
    payload = {"dependencies": list(_dependency_rows(deps))}
    payload.update(result.as_dict())
    return json.dumps(payload, indent=2)


def render_markdown(deps: Sequence[Dep], result: RunResult) -> str:
    lines = [
        "# Dependency License Report",
        "",
        "| Name | License | Description | Category |",
        "| --- | --- | --- | --- |",
    ]
    for row in _dependency_rows(deps):
        lines.append(f"| {row['name']} | {row['license']} | {row['license_name']} | {row['category']} |")

    if result.violations:
        lines.append("\n## Whitelist violations\n")
        for violation in result.violations:
            lines.append(f"- {violation.name}: {violation.license_identifier}")

    if result.warnings:
        lines.append("\n## Warnings\n")
        for warning in result.warnings:
            lines.append(f"- {warning.subject}: {warning.reason}")

    return "\n".join(lines)


def render_html(deps: Sequence[Dep], result: RunResult) -> str:
    template = env.from_string(
        """
<!doctype html>
<html lang=\"en\">
<head>
  <meta charset=\"utf-8\" />
  <title>Dependency License Report</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 2rem; }
    table { border-collapse: collapse; width: 100%; margin-bottom: 1.5rem; }
    th, td { border: 1px solid #d1d5db; padding: 0.5rem; }
    th { background: #f3f4f6; text-align: left; }
    .violation { background: #fee2e2; }
  </style>
</head>
<body>
  <h1>Dependency License Report</h1>
  <table>
    <thead><tr><th>Name</th><th>License</th><th>Description</th><th>Category</th></tr></thead>
    <tbody>
      {% for row in dependencies %}
      <tr{% if row.name in violating %} class=\"violation\"{% endif %}>
        <td>{{ row.name }}</td>
        <td>{{ row.license }}</td>
        <td>{{ row.license_name }}</td>
        <td>{{ row.category }}</td>
      </tr>
      {% endfor %}
    </tbody>
  </table>
  {% if warnings %}
  <section>
    <h2>Warnings</h2>
    <ul>
      {% for warning in warnings %}
      <li>{{ warning.subject }}: {{ warning.reason }}</li>
      {% endfor %}
    </ul>
  </section>
  {% endif %}
</body>
</html>
"""
    )
    return template.render(
        dependencies=list(_dependency_rows(deps)),
        violating={violation.name for violation in result.violations},
        warnings=result.warnings,
    )


def render_report(result: RunResult, fmt: str, by_license: bool = False) -> str:
    deps = sort_dependencies(result.dependencies, by_license=by_license)
    fmt = fmt.lower()
    if fmt == "text":
        return render_text(deps)
    if fmt == "csv":
        return render_csv(deps)
    if fmt == "json":
        return render_json(deps, result)
    if fmt in {"md", "markdown"}:
        return render_markdown(deps, result)
    if fmt == "html":
        return render_html(deps, result)
    raise ValueError(f"Unknown report format: {fmt}")


def write_report(result: RunResult, fmt: str, destination: Path | None, by_license: bool = False) -> str:
    output = render_report(result, fmt, by_license=by_license)
    if destination:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(output)
    return output
