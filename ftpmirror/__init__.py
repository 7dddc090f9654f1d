"""ftpmirror: one-way FTP/SFTP mirror into a local staging tree"""

__version__ = "0.1.0"
