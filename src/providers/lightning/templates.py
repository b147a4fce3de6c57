"""
新建 AuraDefinition 时使用的默认源码

这些内容是兼容性约定，必须逐字保持（包括制表符和换行）。
"""

from typing import Dict, NamedTuple

from src.schemas.lightning import DefFormat, DefType


class DefinitionTemplate(NamedTuple):
    format: DefFormat
    source: str


TEMPLATES: Dict[DefType, DefinitionTemplate] = {
    DefType.COMPONENT: DefinitionTemplate(
        DefFormat.XML, "<aura:component></aura:component>"
    ),
    DefType.APPLICATION: DefinitionTemplate(
        DefFormat.XML, "<aura:application></aura:application>"
    ),
    DefType.INTERFACE: DefinitionTemplate(
        DefFormat.XML,
        '<aura:interface description="Interface template">\n'
        '\t<aura:attribute name="example" type="String" default="" description="An example attribute."/>\n'
        "</aura:interface>",
    ),
    DefType.DOCUMENTATION: DefinitionTemplate(
        DefFormat.XML,
        "<aura:documentation>\n"
        "\t<aura:description>Documentation</aura:description>\n"
        '\t<aura:example name="ExampleName" ref="exampleComponentName" label="Label">\n'
        "\t\tExample Description\n"
        "\t</aura:example>\n"
        "</aura:documentation>",
    ),
    DefType.CONTROLLER: DefinitionTemplate(
        DefFormat.JS, "({\n\tmyAction : function(component, event, helper) {\n\t}\n})"
    ),
    DefType.RENDERER: DefinitionTemplate(
        DefFormat.JS, "({\n\t// Your renderer method overrides go here\n})"
    ),
    DefType.HELPER: DefinitionTemplate(
        DefFormat.JS, "({\n\thelperMethod : function() {\n\t}\n})"
    ),
    DefType.STYLE: DefinitionTemplate(DefFormat.CSS, ".THIS {\n}"),
    DefType.DESIGN: DefinitionTemplate(
        DefFormat.XML, "<design:component>\n\n</design:component>"
    ),
    DefType.SVG: DefinitionTemplate(
        DefFormat.SVG,
        '<?xml version="1.0" encoding="UTF-8" standalone="no"?>\n'
        '<svg width="120px" height="120px" viewBox="0 0 120 120" version="1.1" '
        'xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink">\n'
        "</svg>",
    ),
    DefType.EVENT: DefinitionTemplate(
        DefFormat.XML, '<aura:event type="APPLICATION" description="Event template" />'
    ),
}


def get_template(def_type: DefType) -> DefinitionTemplate:
    return TEMPLATES[DefType(def_type)]
