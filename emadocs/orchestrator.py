import io
import logging
import os
import time
import uuid
import zipfile
from typing import Optional

import httpx
from fastapi import FastAPI, Response
from pydantic import BaseModel, Field

from emadocs.codegen import Emitter
from emadocs.lexer import Lexer
from emadocs.models import ApiErr, ApiOk, CompileOptions, CompileResult, Diagnostic
from emadocs.parser import Parser

logger = logging.getLogger(__name__)

# environment variables
LEX = os.getenv("LEX_URL", "http://lexer-svc:8000/lex")
PARSE = os.getenv("PARSE_URL", "http://parser-svc:8000/compile")  # parser forwards to codegen
TIMEOUT = float(os.getenv("EMADOCS_HTTP_TIMEOUT", "10"))


class Compiler:
    """Runs scanner, parser and emitter over one source text.

    ``options`` are kept on the instance; minify, sourcemap and treeshaking
    do not change the generated output yet.
    """

    def __init__(self, options: Optional[CompileOptions] = None, body_emitters=None):
        self.options = options or CompileOptions()
        self.body_emitters = body_emitters

    def compile(self, source: str, filename: str = "<string>") -> CompileResult:
        start = time.perf_counter()
        warnings = []
        try:
            lexer = Lexer(source)
            tokens = lexer.tokenize()
            warnings += lexer.diagnostics
            parser = Parser(tokens)
            program = parser.parse()
            warnings += parser.diagnostics
            emitter = Emitter(self.body_emitters)
            emitter.gen(program)
            markup, style, script = emitter.output()
        except Exception as ex:
            elapsed = (time.perf_counter() - start) * 1000
            logger.warning(f"Compilation of {filename} failed: {ex}")
            return CompileResult(success=False, errors=[f"Internal compiler error: {ex}"],
                                 warnings=[w.render() for w in warnings], elapsed=elapsed)
        elapsed = (time.perf_counter() - start) * 1000
        logger.info(f"Compiled {filename} in {elapsed:.2f}ms ({len(warnings)} warnings)")
        return CompileResult(success=True, markup=markup, style=style, script=script,
                             warnings=[w.render() for w in warnings], elapsed=elapsed)


def compile(source: str, filename: str = "<string>", options: Optional[CompileOptions] = None) -> CompileResult:
    return Compiler(options).compile(source, filename)


app = FastAPI(title="gateway")

@app.get("/healthz")
def healthz():
    return {"ok": True}

class CompileReq(BaseModel):
    source: str
    filename: str = "<string>"
    options: CompileOptions = Field(default_factory=CompileOptions)

@app.post("/compile")
def compile_api(req: CompileReq):
    result = compile(req.source, req.filename, req.options)
    if not result.success:
        return ApiErr(phase="compile", code="E_COMPILE", msg="; ".join(result.errors))
    return ApiOk(data=result.model_dump())


def _client():
    return httpx.AsyncClient(timeout=TIMEOUT)

@app.post("/compile/remote")
async def compile_remote(req: CompileReq):
    rid = str(uuid.uuid4())
    hdr = {"X-Request-Id": rid}
    start = time.perf_counter()

    async with _client() as c:
        # Step 1: Lexical analysis
        try:
            lex = (await c.post(LEX, json={"source": req.source}, headers=hdr)).json()
        except httpx.HTTPError as e:
            logger.warning(f"[{rid}] lexer unreachable: {e}")
            return ApiErr(phase="compile", code="E_FORWARD_LEX", msg=f"Failed to contact lexer: {e}")
        if not lex.get("ok"):
            return lex

        # Step 2: tokens to parser, which forwards the tree to codegen
        try:
            out = (await c.post(PARSE, json={"tokens": lex["data"]["tokens"]}, headers=hdr)).json()
        except httpx.HTTPError as e:
            logger.warning(f"[{rid}] parser unreachable: {e}")
            return ApiErr(phase="compile", code="E_FORWARD_PARSE", msg=f"Failed to contact parser: {e}")
        if not out.get("ok"):
            return out

    warnings = [Diagnostic(**d).render() for d in lex["data"]["warnings"] + out["data"].get("warnings", [])]
    result = CompileResult(success=True, markup=out["data"]["markup"], style=out["data"]["style"],
                           script=out["data"]["script"], warnings=warnings,
                           elapsed=(time.perf_counter() - start) * 1000)
    return ApiOk(data=result.model_dump())


@app.post("/download")
def download(req: CompileReq):
    result = compile(req.source, req.filename, req.options)
    if not result.success:
        return ApiErr(phase="compile", code="E_COMPILE", msg="; ".join(result.errors))

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("index.html", result.markup)
        zf.writestr("styles.css", result.style)
        zf.writestr("script.js", result.script)
    headers = {"Content-Disposition": "attachment; filename=emadocs-build.zip"}
    return Response(content=buf.getvalue(), media_type="application/zip", headers=headers)
