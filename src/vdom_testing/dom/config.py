HTML_PARSER = "html.parser"

DOCUMENT_TEMPLATE = "<!DOCTYPE html><html><head></head><body></body></html>"

FORM_CONTROL_TAGS = {"input", "textarea", "select"}

BLOCK_TAGS = {
    "address",
    "article",
    "aside",
    "blockquote",
    "body",
    "dd",
    "div",
    "dl",
    "dt",
    "fieldset",
    "figure",
    "footer",
    "form",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "header",
    "hr",
    "html",
    "li",
    "main",
    "nav",
    "ol",
    "p",
    "pre",
    "section",
    "table",
    "ul",
}

HIDDEN_DISPLAY_VALUES = {"none"}

HIDDEN_VISIBILITY_VALUES = {"hidden", "collapse"}

DEFAULT_VISIBILITY = "visible"
