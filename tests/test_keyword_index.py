"""Tests for keyword index construction and query tokenization."""

from conftest import fn, make_file, make_module

from codenav.keyword_index import (
    KeywordIndex,
    build_keyword_index,
    extract_keywords_from_statement,
    extract_summary_words,
    merge_keyword_indices,
    split_camel_case,
    tokenize_query,
)
from codenav.models import FUNCTION, DetectedPattern, ErrorPath, ExportDeclaration, KeyStatement, Node


class TestTextHelpers:
    """Tests for camel-case splitting and word extraction."""

    def test_split_camel_case(self):
        assert split_camel_case("extractFile") == ["extract", "File"]
        assert split_camel_case("parseAPIResponse") == ["parse", "API", "Response"]
        assert split_camel_case("HTTPServer") == ["HTTP", "Server"]
        assert split_camel_case("MAX_RETRIES") == ["MAX_RETRIES"]
        assert split_camel_case("simple") == ["simple"]

    def test_summary_words(self):
        words = extract_summary_words("Handles the session cache for all API requests")
        assert words == ["handles", "session", "cache", "api", "requests"]

    def test_summary_words_empty(self):
        assert extract_summary_words("") == []

    def test_statement_keywords(self):
        keywords = extract_keywords_from_statement("const maxRetries = 3")
        assert keywords[0] == "maxRetries"
        assert "max" in keywords
        assert "retries" in keywords
        assert "const" in keywords


class TestTokenizeQuery:
    """Tests for query tokenization."""

    def test_camel_case_query(self):
        tokens = tokenize_query("extractFile function")
        assert {"extract", "file", "function"} <= set(tokens)

    def test_only_stopwords(self):
        assert tokenize_query("the and or for") == []

    def test_short_tokens_dropped(self):
        assert tokenize_query("go to db") == []

    def test_deduplicated_in_order(self):
        assert tokenize_query("session Session sessions") == ["session", "sessions"]

    def test_status_codes_kept(self):
        assert tokenize_query("404 error handling") == ["404", "error", "handling"]

    def test_empty(self):
        assert tokenize_query("") == []


class TestBuildKeywordIndex:
    """Tests for the inverted keyword index."""

    def test_empty(self):
        index = build_keyword_index([])
        assert index.is_empty()
        assert all(size == 0 for size in index.sizes().values())

    def test_shared_export_keeps_order(self):
        nodes = [
            make_file("src/b.ts", exports=[ExportDeclaration("validate", "function")]),
            make_file("src/a.ts", exports=[ExportDeclaration("validate", "function")]),
        ]
        index = build_keyword_index(nodes)
        assert index.by_export.get("validate") == ["src/b.ts", "src/a.ts"]

    def test_keys_lowercased_and_split(self):
        node = make_file("src/parse.ts", exports=[ExportDeclaration("parseAPIResponse", "function")])
        index = build_keyword_index([node])
        assert index.by_export.get("parseapiresponse") == ["src/parse.ts"]
        assert index.by_export.get("api") == ["src/parse.ts"]
        assert index.by_export.get("response") == ["src/parse.ts"]
        assert "parseAPIResponse" in index.by_export

    def test_exported_functions_indexed(self):
        node = make_file("src/s.ts", functions=[fn("createSession"), fn("internalOnly", exported=False)])
        index = build_keyword_index([node])
        assert index.by_export.get("session") == ["src/s.ts"]
        assert index.by_export.get("internalonly") == []

    def test_no_duplicate_paths(self):
        node = make_file(
            "src/s.ts",
            exports=[ExportDeclaration("createSession", "function")],
            functions=[fn("createSession")],
        )
        index = build_keyword_index([node])
        assert index.by_export.get("createsession") == ["src/s.ts"]

    def test_facts_per_sub_index(self):
        node = make_file(
            "src/api/routes.ts",
            functions=[
                fn(
                    "handle",
                    key_statements=[KeyStatement(line=3, text="const retryLimit = 5")],
                    error_paths=[
                        ErrorPath(kind="throw", http_status=404),
                        ErrorPath(kind="throw"),
                    ],
                ),
            ],
            summary="Routes incoming requests",
        )
        node.patterns.append(DetectedPattern("middleware"))
        index = build_keyword_index([node, make_module("src/api", "api")])

        assert index.by_key_statement.get("retrylimit") == ["src/api/routes.ts"]
        assert index.by_key_statement.get("retry") == ["src/api/routes.ts"]
        assert index.by_error_type.keys() == ["404"]
        assert index.by_pattern.get("middleware") == ["src/api/routes.ts"]
        assert index.by_summary_word.get("routes") == ["src/api/routes.ts"]
        assert index.by_module.get("api") == ["src/api"]

    def test_function_nodes_skipped(self):
        func_node = Node(
            node_id="src/a.ts:run",
            node_type=FUNCTION,
            path="src/a.ts",
            name="run",
            exports=[ExportDeclaration("run", "function")],
            summary="Runs things quickly",
        )
        index = build_keyword_index([func_node])
        assert index.is_empty()

    def test_to_dict(self):
        node = make_file("src/x.ts", exports=[ExportDeclaration("thing", "const")])
        payload = build_keyword_index([node]).to_dict()
        assert payload["byExport"] == {"thing": ["src/x.ts"]}
        assert set(payload) == {"byExport", "byPattern", "byKeyStatement", "bySummaryWord", "byErrorType", "byModule"}


class TestMergeKeywordIndices:
    """Tests for merging shard indices."""

    def test_matches_sequential_build(self):
        nodes = [
            make_file("src/c.ts", exports=[ExportDeclaration("validate", "function")], summary="checks input"),
            make_file("src/a.ts", exports=[ExportDeclaration("validate", "function")], summary="input parser"),
            make_file("src/b.ts", exports=[ExportDeclaration("validateAll", "function")]),
        ]
        sequential = build_keyword_index(nodes)
        shards = [build_keyword_index(nodes[:1]), build_keyword_index(nodes[1:])]
        merged = merge_keyword_indices(shards)
        assert merged.to_dict() == sequential.to_dict()

    def test_merge_nothing(self):
        assert merge_keyword_indices([]).is_empty()
        assert isinstance(merge_keyword_indices([KeywordIndex()]), KeywordIndex)
