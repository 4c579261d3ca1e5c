"""
Topic model selection configuration based on research standards.
References:
- Röder, Michael & Both, Andreas & Hinneburg, Alexander. (2015). Exploring the Space of Topic Coherence Measures. WSDM 2015 - Proceedings of the 8th ACM International Conference on Web Search and Data Mining. 399-408. 10.1145/2684822.2685324.
- David Mimno, Hanna Wallach, Edmund Talley, Miriam Leenders, and Andrew McCallum. 2011. Optimizing Semantic Coherence in Topic Models. In Proceedings of the 2011 Conference on Empirical Methods in Natural Language Processing, pages 262–272, Edinburgh, Scotland, UK.. Association for Computational Linguistics.
- Newman, David & Lau, Jey Han & Grieser, Karl & Baldwin, Timothy. (2010). Automatic Evaluation of Topic Coherence. NAACL HLT 2010. 100-108.
- Wallach, Hanna & Murray, Iain & Salakhutdinov, Ruslan & Mimno, David. (2009). Evaluation methods for topic models. Proceedings of the 26th International Conference On Machine Learning, ICML 2009. 382. 139. 10.1145/1553374.1553515.
"""

TOPIC_CONFIG = {
    'candidate_topics': [5, 10, 15],
    # Coherence metrics 1..4; gensim scores all of them as higher-is-better
    'coherence_measures': ['u_mass', 'c_v', 'c_uci', 'c_npmi'],
    'topn': 10,  # Top terms per topic, for coherence and for labeling
    'passes': 10,
    'iterations': 100,
    # A metric votes for the smallest k within this fraction of max(range, |best|) of its best score
    'selection_tolerance': 0.05,
    'coherence_processes': 1,  # Single-process coherence estimation
}
