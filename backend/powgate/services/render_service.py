"""Jinja2 renderer for the browser challenge page."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class ChallengeRenderer:
    """Renders the page that mines and submits a nonce in the browser.

    ``submit_url`` receives the form-encoded solution; the browser moves on
    to ``verified_url`` once it is accepted.
    """

    def __init__(
        self,
        templates_path: str | Path | None = None,
        submit_url: str = "/post_nonce",
        verified_url: str = "/validate",
    ) -> None:
        self._env = Environment(
            loader=FileSystemLoader(str(templates_path or TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
            keep_trailing_newline=False,
        )
        self.submit_url = submit_url
        self.verified_url = verified_url

    def render(self, key: str, secret: str, required_prefix: str) -> bytes:
        template = self._env.get_template("challenge.html")
        return template.render(
            key=key,
            secret=secret,
            required_prefix=required_prefix,
            submit_url=self.submit_url,
            verified_url=self.verified_url,
        ).encode("utf-8")
