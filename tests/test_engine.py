# tests/test_engine.py
"""Tests for the handlebars engine and its batch wiring."""

import pytest

from templatepipe.core.templating import BatchEngineAdapter, HandlebarsEngine, handlebars_batch
from templatepipe.exceptions import ConfigError, TemplateRegistrationError, TemplateRenderError


def render_all(sources, locals=None, **options):
    engine = HandlebarsEngine(**options)
    for key, content in sources.items():
        engine.register(content, key)
    return engine.render(locals)


class TestRegistration:
    def test_duplicate_key_is_rejected(self):
        engine = HandlebarsEngine()
        engine.register("one", "a.html")
        with pytest.raises(TemplateRegistrationError):
            engine.register("two", "a.html")
        assert engine.registered_keys == ["a.html"]

    def test_invalid_metadata_is_rejected(self):
        engine = HandlebarsEngine()
        with pytest.raises(TemplateRegistrationError):
            engine.register('title = = "broken"', "_meta.toml")
        assert engine.registered_keys == []

    def test_repeat_entry_without_path_is_rejected(self):
        engine = HandlebarsEngine()
        meta = '[[repeat]]\ntemplate = "post.html"\ntitle = "no path"\n'
        with pytest.raises(TemplateRegistrationError):
            engine.register(meta, "posts/_meta.toml")

    def test_non_text_content_is_rejected(self):
        with pytest.raises(TemplateRegistrationError):
            HandlebarsEngine().register(b"bytes", "a.html")

    def test_unknown_options_are_a_config_error(self):
        with pytest.raises(ConfigError):
            HandlebarsEngine.from_options({"no_such_option": True})


class TestRendering:
    def test_locals_override_data(self):
        rendered = render_all(
            {"a.html": "{{greeting}} {{name}}"},
            locals={"name": "local"},
            data={"greeting": "hello", "name": "data"},
        )
        assert rendered == {"a.html": "hello local"}

    def test_metadata_applies_to_its_directory_and_below(self):
        rendered = render_all({
            "_meta.toml": 'title = "Root"',
            "blog/_meta.toml": 'title = "Blog"',
            "index.html": "{{title}}",
            "blog/post.html": "{{title}}",
            "blog/2024/old.html": "{{title}}",
        })
        assert rendered == {
            "index.html": "Root",
            "blog/post.html": "Blog",
            "blog/2024/old.html": "Blog",
        }

    def test_metadata_wins_over_locals(self):
        rendered = render_all(
            {"_meta.toml": 'title = "From meta"', "a.html": "{{title}}"},
            locals={"title": "From locals"},
        )
        assert rendered == {"a.html": "From meta"}

    def test_metadata_files_produce_no_output(self):
        rendered = render_all({"_meta.toml": 'x = 1', "a.html": "a"})
        assert list(rendered) == ["a.html"]

    def test_custom_meta_name(self):
        rendered = render_all({"meta.toml": 'x = "y"', "a.html": "{{x}}"}, meta_name="meta.toml")
        assert rendered == {"a.html": "y"}

    def test_repetition_expands_one_template_into_many(self):
        meta = (
            '[[repeat]]\ntemplate = "post.html"\npath = "first.html"\ntitle = "First"\n\n'
            '[[repeat]]\ntemplate = "post.html"\npath = "second.html"\ntitle = "Second"\n'
        )
        engine = HandlebarsEngine()
        engine.register("<h1>{{title}}</h1>", "posts/post.html")
        engine.register(meta, "posts/_meta.toml")
        rendered = engine.render()
        assert rendered == {
            "posts/first.html": "<h1>First</h1>",
            "posts/second.html": "<h1>Second</h1>",
        }
        assert engine.omitted_keys == {"posts/post.html", "posts/_meta.toml"}

    def test_repeating_an_unknown_template_fails_at_render(self):
        engine = HandlebarsEngine()
        engine.register('[[repeat]]\ntemplate = "missing.html"\npath = "x.html"\n', "_meta.toml")
        with pytest.raises(TemplateRenderError):
            engine.render()

    def test_ignored_templates_are_usable_as_partials(self):
        rendered = render_all(
            {"footer": "(c) {{owner}}", "page.html": "body {{> footer}}"},
            locals={"owner": "ACME"},
            ignore_paths=["footer"],
        )
        assert rendered == {"page.html": "body (c) ACME"}

    def test_custom_helpers_are_available(self):
        rendered = render_all(
            {"a.html": "{{shout name}}"},
            locals={"name": "quiet"},
            helpers={"shout": lambda _this, value: value.upper()},
        )
        assert rendered == {"a.html": "QUIET"}

    def test_builtin_helpers(self):
        rendered = render_all(
            {"a.html": "{{add pages extra}}|{{default subtitle fallback}}|{{join tags sep}}"},
            locals={"pages": 2, "extra": "3", "subtitle": "", "fallback": "none", "tags": ["a", "b"], "sep": "+"},
        )
        assert rendered == {"a.html": "5|none|a+b"}

    def test_failing_helper_is_a_render_error(self):
        def boom(_this, _value):
            raise RuntimeError("helper exploded")

        engine = HandlebarsEngine(helpers={"boom": boom})
        engine.register("{{boom name}}", "a.html")
        with pytest.raises(TemplateRenderError):
            engine.render()

    def test_locals_must_be_a_mapping(self):
        engine = HandlebarsEngine()
        with pytest.raises(TemplateRenderError):
            engine.render(["not", "a", "mapping"])


class TestBatchWiring:
    def test_handlebars_batch_renders_all_files_at_once(self):
        rendered = handlebars_batch(
            {"html/first.html": "first {{secret}}", "html/second.html": "second {{secret}}"},
            {"data": {"secret": "something special"}},
        )
        assert rendered == {
            "html/first.html": "first something special",
            "html/second.html": "second something special",
        }

    def test_handlebars_batch_honours_ignore_paths(self):
        rendered = handlebars_batch(
            {"html/first.html": "1", "html/third.html": "3"},
            {"ignore_paths": ["html/third.html"]},
        )
        assert list(rendered) == ["html/first.html"]

    def test_adapter_issues_one_batch_call_with_locals(self):
        calls = []

        def fake_batch(files, options):
            calls.append((files, options))
            return {key: value[::-1] for key, value in files.items()}

        adapter = BatchEngineAdapter(fake_batch, options={"data": {"a": 1}})
        adapter.register("abc", "x.html")
        adapter.register("def", "y.html")
        assert adapter.render({"secret": "s"}) == {"x.html": "cba", "y.html": "fed"}
        assert calls == [({"x.html": "abc", "y.html": "def"}, {"data": {"a": 1}, "locals": {"secret": "s"}})]

    def test_adapter_rejects_duplicate_keys(self):
        adapter = BatchEngineAdapter()
        adapter.register("a", "a.html")
        with pytest.raises(TemplateRegistrationError):
            adapter.register("b", "a.html")
