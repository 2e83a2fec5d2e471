"""Pool state, Merkle tree engine, synchronizer and queries."""
