import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI
from pydantic import BaseModel, ValidationError

from emadocs import nodes
from emadocs.models import ApiErr, ApiOk

logger = logging.getLogger(__name__)

app = FastAPI(title="codegen-svc")

@app.get("/healthz")
def healthz():
    return {"ok": True}

# Bodies the emitter does not interpret yet. Each hook gets the node and
# returns the text placed inside the generated block.
BodyEmitter = Callable[[Any], str]

DEFAULT_BODY_EMITTERS: Dict[str, BodyEmitter] = {
    "Style": lambda n: "  /* Styles will be generated here */\n",
    "State": lambda n: "  // State properties will be generated here\n",
    "Api": lambda n: "  // API methods will be generated here\n",
    "Animation": lambda n: "  /* Keyframes will be generated here */\n",
}

DOC_HEAD = (
    '<!DOCTYPE html>\n<html lang="en">\n<head>\n'
    '  <meta charset="UTF-8">\n'
    '  <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
)
DOC_LINKS = (
    '  <link rel="stylesheet" href="css/theme.css">\n'
    '  <link rel="stylesheet" href="css/emadocs.css">\n'
    '  <link rel="stylesheet" href="styles.css">\n'
    '</head>\n<body>\n'
)
DOC_FOOT = (
    '  <script src="js/emadocs.js"></script>\n'
    '  <script src="script.js"></script>\n'
    '</body>\n</html>'
)


MARKUP = ("Element", "Text", "Expression")


def capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]


class Emitter:
    """Walks a ``nodes.Program`` and fills the markup, style and script buffers.

    Every node kind produces some output, so emission cannot fail on a
    well-formed tree. A source without any page still gets a bare document.
    """

    def __init__(self, body_emitters: Optional[Dict[str, BodyEmitter]] = None):
        self.markup: List[str] = []
        self.style: List[str] = []
        self.script: List[str] = []
        self.body_emitters = dict(DEFAULT_BODY_EMITTERS)
        if body_emitters: self.body_emitters.update(body_emitters)

    def output(self):
        return "".join(self.markup), "".join(self.style), "".join(self.script)

    def document(self, title, body) -> list:
        self.markup.append(DOC_HEAD)
        if title is not None: self.markup.append(f"  <title>{title}</title>\n")
        self.markup.append(DOC_LINKS)
        return [*body, DOC_FOOT]

    def gen(self, root):
        # explicit work list; strings are markup emitted once the nodes before them are done
        work = [root]
        while work:
            n = work.pop()
            if isinstance(n, str):
                self.markup.append(n)
            else:
                work.extend(reversed(self.emit(n)))

    def emit(self, n) -> list:
        """Emit one node and return the nodes (and trailing markup) to emit after it."""
        t = n.type
        if t == "Program":
            if any(s.type == "Page" for s in n.body):
                return self.loose_markup(n.body)
            return self.document(None, n.body)
        elif t == "Page":
            return self.document(n.attributes.get("title"), n.body)
        elif t == "Component":
            self.component(n)
        elif t == "Style":
            self.style.append(f"/* {n.selector} Styles */\n.{n.selector} {{\n")
            self.style.append(self.body_emitters["Style"](n))
            self.style.append("}\n\n")
        elif t == "Event":
            self.script.append(f"// Event: {n.event_type} on {n.target}\n")
            self.script.append(f"document.addEventListener('{n.event_type}', (event) => {{\n")
            self.script.append("  // Event handler code\n});\n")
        elif t == "State":
            self.script.append(f"// State: {n.name}\nconst {n.name} = {{\n")
            self.script.append(self.body_emitters["State"](n))
            self.script.append("};\n")
        elif t == "Api":
            self.script.append(f"// API: {n.name}\nclass {n.name} {{\n")
            self.script.append("  constructor() {\n    this.baseUrl = '';\n  }\n\n")
            self.script.append(self.body_emitters["Api"](n))
            self.script.append("}\n")
        elif t == "Router":
            self.router()
            return list(n.routes)
        elif t == "Route":
            self.script.append(f"// Route: {n.path} -> {n.component}\n")
        elif t == "Layout":
            self.script.append(f"// Layout: {n.name}\n// Layout implementation will be generated here\n")
        elif t == "Animation":
            self.style.append(f"@keyframes {n.name} {{\n")
            self.style.append(self.body_emitters["Animation"](n))
            self.style.append("}\n\n")
        elif t == "Type":
            self.script.append(f"// Type: {n.name}\n// Type definition will be generated here\n")
        elif t == "Hook":
            self.script.append(f"function use{capitalize(n.name)}() {{\n  // Hook implementation\n}}\n")
        elif t == "Plugin":
            self.script.append(f"// Plugin: {n.name}\n// Plugin initialization will be generated here\n")
        elif t == "Config":
            self.script.append("// Config\n// Configuration will be generated here\n")
        elif t == "Import":
            self.script.append(f"import {self.module_clause(n.specifiers, n.source)};\n")
        elif t == "Export":
            default = "default " if n.is_default else ""
            self.script.append(f"export {default}{self.module_clause(n.specifiers, n.source)};\n")
        elif t in MARKUP:
            self.markup.append(f"  {self.render_markup(n)}\n")
        else:
            raise ValueError(f"Unknown node {t}")
        return []

    @staticmethod
    def loose_markup(body) -> list:
        # markup outside every page gets a bare document where it first appears
        loose = [s for s in body if s.type in MARKUP]
        out = []
        for s in body:
            if s.type not in MARKUP: out.append(s)
            elif s is loose[0]: out.append(nodes.Page(body=loose))
        return out

    def component(self, n):
        tag = f"ema-{n.name.lower()}"
        cls = f"Ema{capitalize(n.name)}"
        self.style.append(
            f"/* {n.name} Component */\n"
            f".{tag} {{\n"
            "  display: block;\n"
            "  position: relative;\n"
            "  box-sizing: border-box;\n"
            "}\n\n"
        )
        self.script.append(
            f"class {cls} extends HTMLElement {{\n"
            "  constructor() {\n"
            "    super();\n"
            "    this.attachShadow({ mode: 'open' });\n"
            "  }\n\n"
            "  connectedCallback() {\n"
            "    this.render();\n"
            "    this.setupEventListeners();\n"
            "  }\n\n"
            "  render() {\n"
            "    this.shadowRoot.innerHTML = this.getTemplate();\n"
            "  }\n\n"
            "  getTemplate() {\n"
            "    return `\n"
            f'      <div class="{tag}">\n'
            "        <slot></slot>\n"
            "      </div>\n"
            "    `;\n"
            "  }\n\n"
            "  setupEventListeners() {\n"
            "    // Event listeners will be added here\n"
            "  }\n"
            "}\n\n"
            f"customElements.define('{tag}', {cls});\n"
        )

    def router(self):
        self.script.append(
            "// Router\n"
            "class EmadocsRouter {\n"
            "  constructor() {\n"
            "    this.routes = new Map();\n"
            "    this.init();\n"
            "  }\n\n"
            "  init() {\n"
            "    window.addEventListener('popstate', () => this.handleRoute());\n"
            "    this.handleRoute();\n"
            "  }\n\n"
            "  handleRoute() {\n"
            "    const path = window.location.pathname;\n"
            "    // Route handling logic\n"
            "  }\n"
            "}\n"
        )

    @staticmethod
    def module_clause(specifiers, source):
        if not specifiers: return f"'{source}'" if source else "{}"
        names = specifiers[0] if len(specifiers) == 1 else "{ " + ", ".join(specifiers) + " }"
        return f"{names} from '{source}'" if source else names

    def render_markup(self, root) -> str:
        out = []
        work = [root]
        while work:
            n = work.pop()
            if isinstance(n, str): out.append(n)
            elif n.type == "Text": out.append(n.value)
            elif n.type == "Expression": out.append(f"{{{{ {n.expression} }}}}")
            elif n.type == "Element":
                attrs = "".join(f' {k}="{v}"' for k, v in n.attributes.items())
                if n.self_closing:
                    out.append(f"<{n.tag_name}{attrs} />")
                    continue
                out.append(f"<{n.tag_name}{attrs}>")
                work.append(f"</{n.tag_name}>")
                work.extend(reversed(n.children))
        return "".join(out)


def generate(program: nodes.Program, body_emitters=None):
    em = Emitter(body_emitters)
    em.gen(program)
    return em.output()


class CodegenReq(BaseModel):
    ast: Dict[str, Any]

@app.post("/codegen")
def codegen_api(req: CodegenReq):
    try:
        program = nodes.Program.model_validate(req.ast)
    except ValidationError as ex:
        return ApiErr(phase="codegen", code="E_CODEGEN_TREE", msg=str(ex))
    markup, style, script = generate(program)
    return ApiOk(data={"markup": markup, "style": style, "script": script})
