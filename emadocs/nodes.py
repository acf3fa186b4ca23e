"""Syntax tree for EmadocsLang.

Every construct is its own model tagged by a literal ``type`` field, so a
serialized tree (``model_dump()``) round-trips through the HTTP services and
``Program.model_validate`` picks the right variant for each node.
"""
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class Program(BaseModel):
    type: Literal["Program"] = "Program"
    body: List["Node"] = Field(default_factory=list)


class Page(BaseModel):
    type: Literal["Page"] = "Page"
    name: str = ""
    attributes: Dict[str, str] = Field(default_factory=dict)
    body: List["Node"] = Field(default_factory=list)


class Component(BaseModel):
    type: Literal["Component"] = "Component"
    name: str = ""
    type_params: List[str] = Field(default_factory=list)
    # not populated from the component block yet
    props: List["Node"] = Field(default_factory=list)
    events: List["Node"] = Field(default_factory=list)
    state: List["Node"] = Field(default_factory=list)
    methods: List["Node"] = Field(default_factory=list)
    render: Optional["Node"] = None


class Style(BaseModel):
    type: Literal["Style"] = "Style"
    selector: str = ""
    rules: List["Node"] = Field(default_factory=list)


class Event(BaseModel):
    type: Literal["Event"] = "Event"
    event_type: str = ""
    target: str = ""
    body: List["Node"] = Field(default_factory=list)


class State(BaseModel):
    type: Literal["State"] = "State"
    name: str = ""
    properties: List["Node"] = Field(default_factory=list)


class Api(BaseModel):
    type: Literal["Api"] = "Api"
    name: str = ""
    properties: Dict[str, str] = Field(default_factory=dict)
    methods: List["Node"] = Field(default_factory=list)


class Router(BaseModel):
    type: Literal["Router"] = "Router"
    routes: List["Node"] = Field(default_factory=list)


class Route(BaseModel):
    type: Literal["Route"] = "Route"
    path: str = ""
    component: str = ""
    options: Dict[str, str] = Field(default_factory=dict)


class Layout(BaseModel):
    type: Literal["Layout"] = "Layout"
    name: str = ""
    render: Optional["Node"] = None


class Animation(BaseModel):
    type: Literal["Animation"] = "Animation"
    name: str = ""
    keyframes: List["Node"] = Field(default_factory=list)


class Type(BaseModel):
    type: Literal["Type"] = "Type"
    name: str = ""
    definition: Optional["Node"] = None


class Hook(BaseModel):
    type: Literal["Hook"] = "Hook"
    name: str = ""
    parameters: List["Node"] = Field(default_factory=list)
    body: List["Node"] = Field(default_factory=list)


class Plugin(BaseModel):
    type: Literal["Plugin"] = "Plugin"
    name: str = ""
    properties: Dict[str, str] = Field(default_factory=dict)


class Config(BaseModel):
    type: Literal["Config"] = "Config"
    properties: Dict[str, str] = Field(default_factory=dict)


class Import(BaseModel):
    type: Literal["Import"] = "Import"
    specifiers: List[str] = Field(default_factory=list)
    source: str = ""


class Export(BaseModel):
    type: Literal["Export"] = "Export"
    specifiers: List[str] = Field(default_factory=list)
    source: str = ""
    is_default: bool = False


class Element(BaseModel):
    type: Literal["Element"] = "Element"
    tag_name: str
    attributes: Dict[str, str] = Field(default_factory=dict)
    children: List["Node"] = Field(default_factory=list)
    self_closing: bool = False


class Text(BaseModel):
    type: Literal["Text"] = "Text"
    value: str


class Expression(BaseModel):
    type: Literal["Expression"] = "Expression"
    expression: str


Node = Annotated[
    Union[
        Program, Page, Component, Style, Event, State, Api, Router, Route, Layout,
        Animation, Type, Hook, Plugin, Config, Import, Export, Element, Text, Expression,
    ],
    Field(discriminator="type"),
]

NODE_TYPES = (
    Program, Page, Component, Style, Event, State, Api, Router, Route, Layout,
    Animation, Type, Hook, Plugin, Config, Import, Export, Element, Text, Expression,
)

for _model in NODE_TYPES:
    _model.model_rebuild()
