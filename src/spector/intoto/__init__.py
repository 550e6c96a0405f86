"""in-toto attestation framework models.

See https://github.com/in-toto/attestation/tree/main/spec/v1
"""
