from openrag.services.language_rules import (
    detect_language,
    extract_dependencies,
    get_structure_rule,
    is_code_language,
    is_markup_language,
)


def test_detect_language_by_extension():
    assert detect_language("src/index.ts") == "typescript"
    assert detect_language("lib/Widget.JSX") == "javascript"
    assert detect_language("app/main.py") == "python"
    assert detect_language("docs/guide.md") == "markdown"
    assert detect_language("Makefile") is None


def test_code_and_markup_sets():
    assert is_code_language("rust")
    assert not is_code_language("markdown")
    assert not is_code_language(None)
    assert is_markup_language("markdown")
    assert not is_markup_language("text")


def test_script_rule_spots_functions_and_classes():
    rule = get_structure_rule("typescript")

    assert rule.is_structure_start("export async function load(id: string) {")
    assert rule.is_structure_start("  const handler = async (event) => {")
    assert rule.is_structure_start("export default class Widget extends Base {")
    assert not rule.is_structure_start("const limit = 10;")
    assert not rule.is_structure_start("return handler(event);")


def test_python_rule_is_not_brace_delimited():
    rule = get_structure_rule("python")

    assert rule.is_structure_start("    async def fetch(self):")
    assert rule.is_structure_start("class Repo:")
    assert not rule.brace_delimited


def test_languages_without_rules():
    assert get_structure_rule("cpp") is None
    assert get_structure_rule(None) is None


def test_extract_script_dependencies_in_first_seen_order():
    content = "\n".join([
        "import React from 'react';",
        "import './styles.css';",
        "const lodash = require('lodash');",
        "import { useState } from 'react';",
    ])

    assert extract_dependencies(content, "javascript") == ["react", "./styles.css", "lodash"]


def test_extract_python_dependencies():
    content = "import os\nfrom typing import Optional\nfrom openrag.config import settings\n"

    assert extract_dependencies(content, "python") == ["os", "typing", "openrag.config"]


def test_extract_dependencies_scans_only_the_file_head():
    content = "\n" * 60 + "import late from 'late';"

    assert extract_dependencies(content, "typescript") == []


def test_extract_dependencies_unknown_language():
    assert extract_dependencies("import x from 'y';", "cpp") is None
    assert extract_dependencies("anything", None) is None
