"""Tests for manifests/decoding.py module."""

import io

from kube_vault.exceptions import ManifestDecodeError
from kube_vault.manifests.decoding import iter_documents, split_documents


def _stream(text):
    return io.BytesIO(text.encode() if isinstance(text, str) else text)


def _documents(text, errors=None):
    return list(iter_documents(_stream(text), errors))


def _chunks(text):
    return list(split_documents(_stream(text)))


class TestSplitDocuments:
    """Tests for splitting a stream on document markers."""

    def test_single_document_without_marker(self):
        """Test a stream with no marker is one document."""
        assert _chunks("a: 1\nb: 2\n") == [b"a: 1\nb: 2\n"]

    def test_multiple_documents(self):
        """Test documents are split on ---."""
        assert _chunks("---\na: 1\n---\nb: 2\n") == [b"a: 1\n", b"b: 2\n"]

    def test_comment_only_documents_are_skipped(self):
        """Test documents holding only comments and blanks produce nothing."""
        text = "---\n# Source: chart/templates/empty.yaml\n\n---\na: 1\n"
        assert _chunks(text) == [b"a: 1\n"]

    def test_content_on_marker_line(self):
        """Test content after --- on the same line starts the next document."""
        assert _chunks("--- {a: 1}\n--- {b: 2}\n") == [b"{a: 1}\n", b"{b: 2}\n"]

    def test_document_end_marker(self):
        """Test ... ends a document."""
        assert _chunks("a: 1\n...\nb: 2\n") == [b"a: 1\n", b"b: 2\n"]

    def test_dashes_inside_values_do_not_split(self):
        """Test a line merely starting with more dashes is not a marker."""
        assert len(_chunks("a: |\n  ----\n  text\n")) == 1
        assert len(_chunks("----\na: 1\n")) == 1

    def test_directive_before_document_is_dropped(self):
        """Test %YAML directives don't leak into the document text."""
        assert _chunks("%YAML 1.1\n---\na: 1\n") == [b"a: 1\n"]

    def test_last_line_without_newline(self):
        """Test a stream not ending in a newline still yields its last document."""
        assert _chunks("---\na: 1") == [b"a: 1\n"]


class TestIterDocuments:
    """Tests for decoding documents lazily."""

    def test_decodes_mixed_documents(self):
        """Test mappings and sequences are both decoded."""
        docs = _documents("---\nkind: ConfigMap\n---\n- a\n- b\n")

        assert len(docs) == 2
        assert docs[0].kind == "ConfigMap"
        assert docs[1].body == ["a", "b"]

    def test_document_indexes_are_one_based(self):
        """Test document indexes follow stream position."""
        docs = _documents("a: 1\n---\nb: 2\n")
        assert [doc.index for doc in docs] == [1, 2]

    def test_null_documents_are_skipped(self):
        """Test a document that decodes to null is not yielded."""
        docs = _documents("---\n~\n---\na: 1\n")
        assert len(docs) == 1

    def test_utf8_values(self):
        """Test non-ASCII UTF-8 content decodes."""
        docs = _documents("kind: ConfigMap\ndata:\n  greeting: héllo\n")
        assert docs[0].body["data"]["greeting"] == "héllo"

    def test_malformed_document_is_isolated(self):
        """Test one broken document doesn't stop the others."""
        errors = []
        text = "---\nkind: Secret\n---\nkey: [unclosed\n---\nkind: Pod\n"

        docs = _documents(text, errors)

        assert [doc.kind for doc in docs] == ["Secret", "Pod"]
        assert len(errors) == 1
        assert isinstance(errors[0], ManifestDecodeError)
        assert errors[0].index == 2
        assert "#2" in str(errors[0])

    def test_invalid_utf8_document_is_isolated(self):
        """Test a document with invalid UTF-8 bytes is skipped on its own."""
        errors = []
        raw = b"---\nkind: ConfigMap\ndata:\n  x: \xff\xfe\n---\nkind: Pod\nmetadata:\n  name: p\n"

        docs = _documents(raw, errors)

        assert [doc.kind for doc in docs] == ["Pod"]
        assert len(errors) == 1
        assert errors[0].index == 1
        assert "invalid UTF-8" in str(errors[0])

    def test_malformed_document_without_error_list(self):
        """Test decode errors are tolerated when no list is passed."""
        docs = _documents("key: [unclosed\n---\nkind: Pod\n")
        assert [doc.kind for doc in docs] == ["Pod"]

    def test_lazy_decoding(self):
        """Test documents are produced one at a time."""
        iterator = iter_documents(_stream("a: 1\n---\nb: 2\n"))
        first = next(iterator)
        assert first.body == {"a": 1}


class TestManifestDocument:
    """Tests for ManifestDocument accessors."""

    def test_label_with_kind_and_name(self):
        """Test label combines kind and metadata name."""
        doc = _documents("kind: Deployment\nmetadata:\n  name: web\n")[0]
        assert doc.label == "Deployment/web"

    def test_label_without_metadata(self):
        """Test label falls back to the document index."""
        doc = _documents("- a\n")[0]
        assert doc.kind == ""
        assert doc.name == ""
        assert doc.label == "document/#1"
