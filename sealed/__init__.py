"""
Sealed stores encrypted values in dotenv files next to plaintext ones.

Each value is sealed with ChaCha20-Poly1305 under a 32 byte key, using the variable's name as
associated data, and written in place as 'VAR=ENCv1:<nonce>:<ciphertext>'. Renaming a sealed
variable makes it undecryptable.

Generate a key and keep it out of version control:

\b
    $ sealed keygen --out-file .sealed.key

Provide the key through exactly one of --key, --key-file, --key-stdin, or SEALED_KEY:

\b
    $ export SEALED_KEY="$(cat .sealed.key)"

Seal a value into .env (plaintext comes from stdin, a file, or argv with --allow-argv):

\b
    $ printf 'hunter2' | sealed set DATABASE_PASSWORD --stdin

Read it back:

\b
    $ sealed get DATABASE_PASSWORD --reveal

Applications read sealed variables from the environment with sealed.api.var().
"""

__author__ = 'Sealed contributors'
__version__ = '0.1.0'
