# textlasso/engines/text_vectorizer_engine.py
from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Iterable, List, Mapping, Sequence, Tuple, Union

import numpy as np
import scipy.sparse as sp
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

from textlasso import logs

_WORD_RE = re.compile(r"[^\W_]+(?:'[^\W_]+)*")

NGRAM_DELIM = "_"


def resolve_stopwords(value: Union[str, Iterable[str], None]) -> FrozenSet[str]:
    """
    "english" -> scikit-learn's English stop-word list, "none"/None -> empty,
    an iterable -> that set (lowercased).
    """
    if value is None or value == "none":
        return frozenset()
    if value == "english":
        return frozenset(ENGLISH_STOP_WORDS)
    if isinstance(value, str):
        raise ValueError(f"unknown stopword preset {value!r}")
    return frozenset(w.lower() for w in value)


@dataclass(frozen=True, eq=False)
class VectorizerState:
    """
    VectorizerState

    Fitted vocabulary + idf weights. Fixed after fit; transform only reads it.
    """
    vocabulary: Tuple[str, ...]
    index: Mapping[str, int]
    idf: np.ndarray
    stopwords: FrozenSet[str]
    ngram_range: Tuple[int, int]
    n_documents: int

    def __len__(self) -> int:
        return len(self.vocabulary)


class TextVectorizerEngine:
    """
    TextVectorizerEngine

    tokenize -> stopword filter -> n-grams -> vocabulary (min_times /
    max_tokens) -> tf-idf.

    Contract:
    - fit builds a fresh VectorizerState from the fit corpus only
    - transform never extends the vocabulary; unseen n-grams are dropped
    - texts without in-vocabulary n-grams give all-zero rows
    """

    def __init__(
            self,
            *,
            stopwords: Union[str, Iterable[str], None] = "english",
            ngram_range: Tuple[int, int] = (1, 2),
            smooth_idf: bool = False,
    ):
        lo, hi = ngram_range
        if lo < 1 or lo > hi:
            raise ValueError(f"invalid ngram_range {ngram_range}")
        self.stopwords = resolve_stopwords(stopwords)
        self.ngram_range = (int(lo), int(hi))
        self.smooth_idf = smooth_idf

    # ======================================================================
    # Public API
    # ======================================================================
    def fit(
            self,
            texts: Sequence[str],
            *,
            max_tokens: int,
            min_times: int = 1,
    ) -> VectorizerState:
        if max_tokens < 1:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}")

        doc_freq: dict[str, int] = {}
        corpus_freq: dict[str, int] = {}
        first_seen: dict[str, int] = {}

        for text in texts:
            grams = self.analyze(text)
            for g in grams:
                if g not in first_seen:
                    first_seen[g] = len(first_seen)
                corpus_freq[g] = corpus_freq.get(g, 0) + 1
            for g in set(grams):
                doc_freq[g] = doc_freq.get(g, 0) + 1

        survivors = [g for g in first_seen if doc_freq[g] >= min_times]
        # descending corpus frequency, ties by first occurrence
        survivors.sort(key=lambda g: (-corpus_freq[g], first_seen[g]))
        vocabulary = tuple(survivors[:max_tokens])

        n_docs = len(texts)
        df = np.array([doc_freq[g] for g in vocabulary], dtype=np.float64)
        if self.smooth_idf:
            idf = np.log((1.0 + n_docs) / (1.0 + df)) + 1.0
        else:
            idf = np.log(n_docs / df)
        idf.setflags(write=False)

        logs.debug(
            f"[TextVectorizer] fit docs={n_docs} candidates={len(first_seen)} "
            f"kept={len(vocabulary)} (min_times={min_times}, max_tokens={max_tokens})"
        )

        return VectorizerState(
            vocabulary=vocabulary,
            index=MappingProxyType({g: j for j, g in enumerate(vocabulary)}),
            idf=idf,
            stopwords=self.stopwords,
            ngram_range=self.ngram_range,
            n_documents=n_docs,
        )

    def transform(self, texts: Sequence[str], state: VectorizerState) -> sp.csr_matrix:
        indptr = [0]
        indices: List[int] = []
        data: List[float] = []

        for text in texts:
            counts: dict[int, int] = {}
            for g in self.analyze(text, stopwords=state.stopwords, ngram_range=state.ngram_range):
                j = state.index.get(g)
                if j is not None:
                    counts[j] = counts.get(j, 0) + 1

            total = sum(counts.values())
            for j in sorted(counts):
                indices.append(j)
                data.append(counts[j] / total * state.idf[j])
            indptr.append(len(indices))

        X = sp.csr_matrix(
            (np.asarray(data, dtype=np.float64), np.asarray(indices, dtype=np.int32), np.asarray(indptr)),
            shape=(len(texts), len(state)),
        )
        # idf == 0 for n-grams present in every fit document
        X.eliminate_zeros()
        return X

    # ------------------------------------------------------------------
    # Tokenization (shared by fit / transform)
    # ------------------------------------------------------------------
    def analyze(
            self,
            text: str,
            *,
            stopwords: FrozenSet[str] | None = None,
            ngram_range: Tuple[int, int] | None = None,
    ) -> List[str]:
        stopwords = self.stopwords if stopwords is None else stopwords
        lo, hi = self.ngram_range if ngram_range is None else ngram_range

        tokens = [t for t in tokenize(text) if t not in stopwords]
        grams: List[str] = []
        for n in range(lo, hi + 1):
            for i in range(len(tokens) - n + 1):
                grams.append(NGRAM_DELIM.join(tokens[i:i + n]))
        return grams


def tokenize(text: str | None) -> List[str]:
    if not text:
        return []
    return _WORD_RE.findall(text.lower())
