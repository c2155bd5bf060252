"""
Zero-Knowledge Proofs of Discrete Logarithm Knowledge
Fiat-Shamir proofs, the interactive protocol and group parameter handling
"""

from .dlog_proofs import (
    # Core API
    prove,
    verify,
    derive_challenge_bits,
    create_proof_artifact,
    verify_artifact,
    ROUNDS_OF_VERIFY,
    DEFAULT_HASH_ALGORITHM,
    SUPPORTED_HASH_ALGORITHMS,

    # Core classes
    ModularContext,
    Proof,
    ProofArtifact,

    # Exceptions
    ZKError,
    InvalidParameterError,
    ProofFormatError,
    ProofGenerationError,
)
from .parameters import (
    GroupParameters,
    TOY_PARAMETERS,
    get_named_parameters,
    generate_parameters,
    parameters_to_pem,
    load_parameters_pem,
    resolve_parameters,
)
from .interactive import (
    DlogProver,
    DlogVerifier,
    CheatingProver,
    Transcript,
    ProtocolStateError,
    run_interactive_session,
    simulate_transcript,
    extract_secret,
)
from .proof_system import DlogProofSystem, BatchLimiter

__version__ = "1.0.0"

__all__ = [
    # Functions
    'prove',
    'verify',
    'derive_challenge_bits',
    'create_proof_artifact',
    'verify_artifact',
    'get_named_parameters',
    'generate_parameters',
    'parameters_to_pem',
    'load_parameters_pem',
    'resolve_parameters',
    'run_interactive_session',
    'simulate_transcript',
    'extract_secret',

    # Constants
    'ROUNDS_OF_VERIFY',
    'DEFAULT_HASH_ALGORITHM',
    'SUPPORTED_HASH_ALGORITHMS',
    'TOY_PARAMETERS',

    # Classes
    'ModularContext',
    'Proof',
    'ProofArtifact',
    'GroupParameters',
    'DlogProver',
    'DlogVerifier',
    'CheatingProver',
    'Transcript',
    'DlogProofSystem',
    'BatchLimiter',

    # Exceptions
    'ZKError',
    'InvalidParameterError',
    'ProofFormatError',
    'ProofGenerationError',
    'ProtocolStateError',
]
