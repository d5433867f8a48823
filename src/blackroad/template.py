"""Black Road templating support

Templates are shipped in the `templates` directory of this package and
rendered with Jinja2::

    storage "s3" {
      bucket = "{{ s3.bucket }}"
    }

"""

import importlib_resources
import jinja2

from blackroad import TemplatingError


class Jinja2Engine(object):
    def __init__(self):
        self.env = jinja2.Environment(
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=jinja2.StrictUndefined,
        )

    def template(self, name, args):
        """Render the packaged template `name`."""
        source = (
            importlib_resources.files("blackroad")
            .joinpath("templates")
            .joinpath(name)
            .read_text()
        )
        return self.expand(source, args, identifier=name)

    def expand(self, templatestr, args, identifier="<template>"):
        try:
            tmpl = self.env.from_string(templatestr)
            tmpl.filename = identifier
            return tmpl.render(**args)
        except jinja2.exceptions.TemplateError as e:
            raise TemplatingError.from_context(e, identifier)


def render(name, args):
    return Jinja2Engine().template(name, args)
