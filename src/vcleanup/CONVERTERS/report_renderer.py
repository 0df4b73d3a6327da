# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Converters for presenting a cleanup report as text or JSON.
"""
from jinja2 import Template
from ..MODELS.cleanup_report import CleanupReport

REPORT_TEMPLATE = """\
Using image name regexp: {{ report.pattern }}
{% if report.current_artifact %}Current artifact: {{ report.current_artifact }}
{% endif %}\
Virtual machines selected for deletion: [{{ report.to_delete | join(', ') }}]
Virtual machines will be kept: [{{ report.to_keep | join(', ') }}]
{% if report.dry_run %}\
Dry run: nothing was deleted.
{% else %}\
{% for result in report.results %}\
{{ "%-24s" | format(result.outcome.value) }} {{ result.name }}{% if result.reason %}: {{ result.reason }}{% endif %}
{% endfor %}\
{% endif %}\
{{ report.summary() }}
"""


class ReportRenderer:
    """
    Renders CleanupReport objects for the command line.
    """

    def __init__(self):
        self.template = Template(REPORT_TEMPLATE)

    def render(self, report: CleanupReport, fmt: str = "text") -> str:
        """
        Renders a report.

        :param report: The report of a finished run.
        :param fmt: 'text' or 'json'.
        :return: The rendered report.
        """
        if fmt == "json":
            return report.model_dump_json(indent=2)
        if fmt == "text":
            return self.template.render(report=report).rstrip("\n")
        raise ValueError(f"Unknown report format '{fmt}'")
