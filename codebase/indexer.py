"""Local code index backed by FAISS.

Walks the project for source and documentation files, embeds each file and
answers nearest-neighbour queries with a flat inner-product FAISS index over
normalized vectors (cosine similarity, brute force).

The default embedder is a 16-bucket character histogram: cheap, fully
reproducible and good enough to rank a handful of files for prompt context.
It is not a semantic embedding. Set ``AGENT_INDEX_EMBEDDER=sentence-transformers``
to use a real sentence-transformer model instead (requires the ``semantic``
extra).

Usage::

    from codebase.indexer import CodeIndexer
    indexer = CodeIndexer(project_root, index_dir)
    indexer.index_project()
    hits = indexer.search("patch engine", limit=3)
"""

import ast
import hashlib
import json
import os
import threading
from dataclasses import asdict, dataclass, field
from typing import Optional

import faiss
import numpy as np

SUPPORTED_EXTENSIONS = frozenset({".py", ".pyi", ".ts", ".tsx", ".js", ".jsx", ".json", ".md", ".toml"})
_SKIP_DIRS = frozenset({"node_modules", "__pycache__", "venv", "env", "site-packages", "dist", "build"})
_MAX_DESCRIPTIONS = 12

_INDEX_FILE = "code.faiss"
_META_FILE = "code_meta.json"
_HASH_FILE = "code_hash.txt"


@dataclass
class IndexedFile:
    path: str
    symbol_count: int
    exports: list[str]
    content: str
    embedding: list[float] = field(default_factory=list)
    score: float = 0.0


# ── Embedders ─────────────────────────────────────────────────────────────────


def compute_embedding(text: str, dims: int = 16) -> np.ndarray:
    """Fold character codes into *dims* buckets and L2-normalize."""
    vector = np.zeros(dims, dtype=np.float32)
    if text:
        codes = np.frombuffer(text.encode("utf-32-le", "surrogatepass"), dtype=np.uint32).astype(np.float64) / 255.0
        np.add.at(vector, np.arange(codes.size) % dims, codes)
    norm = float(np.linalg.norm(vector)) or 1.0
    return (vector / norm).astype(np.float32)


class HistogramEmbedder:
    name = "histogram"

    def encode(self, texts: list[str]) -> np.ndarray:
        return np.vstack([compute_embedding(t) for t in texts]).astype(np.float32)


class SentenceTransformerEmbedder:
    """Semantic embedder using a local sentence-transformer model."""

    def __init__(self, model_name: str = "all-MiniLM-L6-v2") -> None:
        from sentence_transformers import SentenceTransformer

        self.name = f"sentence-transformers:{model_name}"
        self._model = SentenceTransformer(model_name)

    def encode(self, texts: list[str]) -> np.ndarray:
        vectors = self._model.encode(texts, normalize_embeddings=True)
        return np.asarray(vectors, dtype=np.float32)


def create_embedder(kind: str = "histogram", model_name: str = "all-MiniLM-L6-v2"):
    if kind == "histogram":
        return HistogramEmbedder()
    if kind == "sentence-transformers":
        return SentenceTransformerEmbedder(model_name)
    raise ValueError(f"Unknown index embedder '{kind}'. Use 'histogram' or 'sentence-transformers'.")


# ── Index ─────────────────────────────────────────────────────────────────────


class CodeIndexer:
    """File-level vector index of the project.

    The index is persisted under *index_dir* and reused as long as the set of
    indexed files (path, size, mtime) and the embedder are unchanged. One
    indexer is shared by every session, so rebuilds and searches are
    serialized on an internal lock.
    """

    def __init__(self, project_root: str, index_dir: str, embedder=None) -> None:
        self.project_root = os.path.abspath(project_root)
        self._index_dir = index_dir
        self._embedder = embedder or HistogramEmbedder()

        self._files: list[IndexedFile] = []
        self._index: Optional[faiss.IndexFlatIP] = None
        self._indexed = False
        self._lock = threading.RLock()

    # ── Public API ────────────────────────────────────────────────────────

    def index_project(self) -> int:
        """(Re)build or reload the index and return the number of files."""
        with self._lock:
            return self._load_or_build()

    def _load_or_build(self) -> int:
        paths = self._walk_project()
        current_hash = self._compute_fingerprint(paths)
        hash_path = os.path.join(self._index_dir, _HASH_FILE)
        index_path = os.path.join(self._index_dir, _INDEX_FILE)
        meta_path = os.path.join(self._index_dir, _META_FILE)
        self._indexed = True

        if os.path.exists(hash_path) and os.path.exists(index_path) and os.path.exists(meta_path):
            with open(hash_path, "r") as f:
                stored_hash = f.read().strip()
            if stored_hash == current_hash:
                index = faiss.read_index(index_path)
                with open(meta_path, "r", encoding="utf-8") as f:
                    self._files, self._index = [IndexedFile(**entry) for entry in json.load(f)], index
                return len(self._files)

        # ── Build fresh index ─────────────────────────────────────────────
        files: list[IndexedFile] = []
        for abs_path in paths:
            try:
                with open(abs_path, "r", encoding="utf-8") as f:
                    content = f.read()
            except (OSError, UnicodeDecodeError):
                continue
            rel_path = os.path.relpath(abs_path, self.project_root)
            files.append(
                IndexedFile(
                    path=rel_path,
                    symbol_count=len(content),
                    exports=extract_exports(content) if rel_path.endswith((".py", ".pyi")) else [],
                    content=content,
                )
            )

        if not files:
            self._files, self._index = [], None
            return 0

        embeddings = self._embedder.encode([f.content for f in files])
        for entry, vector in zip(files, embeddings):
            entry.embedding = [float(v) for v in vector]

        index = faiss.IndexFlatIP(embeddings.shape[1])
        index.add(embeddings)
        self._files, self._index = files, index

        os.makedirs(self._index_dir, exist_ok=True)
        faiss.write_index(index, index_path)
        with open(meta_path, "w", encoding="utf-8") as f:
            json.dump([asdict(entry) for entry in files], f)
        with open(hash_path, "w") as f:
            f.write(current_hash)

        return len(files)

    def search(self, query: str, limit: int = 5) -> list[IndexedFile]:
        """Return up to *limit* files ordered by descending similarity."""
        with self._lock:
            if not self._indexed:
                self._load_or_build()
            files, index = self._files, self._index
        if index is None or not files or limit <= 0:
            return []

        query_vec = self._embedder.encode([query])
        scores, indices = index.search(query_vec, min(limit, len(files)))

        results: list[IndexedFile] = []
        for score, i in zip(scores[0], indices[0]):
            if 0 <= i < len(files):
                hit = files[i]
                results.append(
                    IndexedFile(hit.path, hit.symbol_count, list(hit.exports), hit.content, hit.embedding, float(score))
                )
        return results

    def describe_file(self, relative_path: str, focus_symbol: Optional[str] = None) -> str:
        """Best-effort one-line-per-declaration summary of a Python file."""
        abs_path = os.path.join(self.project_root, relative_path)
        if not relative_path.endswith((".py", ".pyi")) or not os.path.isfile(abs_path):
            return f"No Python AST available for {relative_path}."

        try:
            with open(abs_path, "r", encoding="utf-8") as f:
                tree = ast.parse(f.read(), filename=relative_path)
        except (OSError, SyntaxError, UnicodeDecodeError, ValueError):
            return f"No Python AST available for {relative_path}."

        descriptions = describe_tree(tree, focus_symbol)
        if not descriptions:
            return f"No notable declarations found in {relative_path}."
        return "\n".join(descriptions)

    @property
    def files(self) -> list[IndexedFile]:
        return list(self._files)

    @property
    def embedder(self):
        return self._embedder

    # ── Internals ─────────────────────────────────────────────────────────

    def _walk_project(self) -> list[str]:
        results: list[str] = []
        for current, dirs, filenames in os.walk(self.project_root):
            dirs[:] = sorted(
                d for d in dirs
                if not d.startswith(".") and d not in _SKIP_DIRS and not d.endswith(".egg-info")
            )
            for name in sorted(filenames):
                if os.path.splitext(name)[1] in SUPPORTED_EXTENSIONS:
                    results.append(os.path.join(current, name))
        return results

    def _compute_fingerprint(self, paths: list[str]) -> str:
        """Deterministic hash of the file set for staleness checks."""
        entries = [self._embedder.name]
        for p in paths:
            stat = os.stat(p)
            entries.append(f"{os.path.relpath(p, self.project_root)}:{stat.st_size}:{stat.st_mtime_ns}")
        blob = json.dumps(entries)
        return hashlib.sha256(blob.encode()).hexdigest()


# ── AST helpers ───────────────────────────────────────────────────────────────


def _signature(node) -> str:
    args = []
    for arg in node.args.posonlyargs + node.args.args + node.args.kwonlyargs:
        annotation = f": {ast.unparse(arg.annotation)}" if arg.annotation else ""
        args.append(f"{arg.arg}{annotation}")
    if node.args.vararg:
        args.append(f"*{node.args.vararg.arg}")
    if node.args.kwarg:
        args.append(f"**{node.args.kwarg.arg}")
    returns = ast.unparse(node.returns) if node.returns else "Any"
    return f"{node.name}({', '.join(args)}) -> {returns}"


def _variable_names(node) -> list[str]:
    if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
        return [node.target.id]
    if isinstance(node, ast.Assign):
        return [t.id for t in node.targets if isinstance(t, ast.Name)]
    return []


def describe_tree(tree: ast.Module, focus_symbol: Optional[str] = None) -> list[str]:
    focus = focus_symbol.lower() if focus_symbol else None
    body = tree.body
    descriptions: list[str] = []

    def wanted(name: str) -> bool:
        return len(descriptions) <= _MAX_DESCRIPTIONS and (focus is None or name.lower() == focus)

    for node in body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and wanted(node.name):
            descriptions.append(f"function: {_signature(node)}")

    for node in body:
        if isinstance(node, ast.ClassDef) and wanted(node.name):
            bases = ", ".join(ast.unparse(b) for b in node.bases)
            methods = [
                _signature(m) for m in node.body
                if isinstance(m, (ast.FunctionDef, ast.AsyncFunctionDef))
            ][:5]
            heading = f"{node.name}({bases})" if bases else node.name
            descriptions.append(f"class: {heading} {{ {'; '.join(methods)} }}")

    for node in body:
        for name in _variable_names(node):
            if not wanted(name):
                continue
            annotation = f": {ast.unparse(node.annotation)}" if isinstance(node, ast.AnnAssign) else ""
            value = f" = {type(node.value).__name__}" if node.value is not None else ""
            descriptions.append(f"variable: {name}{annotation}{value}")

    return descriptions


def extract_exports(source: str) -> list[str]:
    """Return ``__all__`` when it is a literal list, else the public top-level names."""
    try:
        tree = ast.parse(source)
    except (SyntaxError, ValueError):
        return []

    for node in tree.body:
        if "__all__" in _variable_names(node) and node.value is not None:
            try:
                names = ast.literal_eval(node.value)
            except ValueError:
                break
            return [str(n) for n in names]

    exports: list[str] = []
    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            names = [node.name]
        else:
            names = _variable_names(node)
        exports.extend(n for n in names if not n.startswith("_"))
    return exports
