"""Shared fixtures: a small mysqldump-style file with two CREATE blocks and an INSERT-only table."""

import gzip

import pytest

from core.dump_scanner import DumpScanner

SAMPLE_LINES = [
    b"-- MySQL dump 10.13\n",
    b"SET NAMES utf8mb4;\n",
    b"CREATE DATABASE IF NOT EXISTS `shop`;\n",
    b"USE `shop`;\n",
    b"DROP TABLE IF EXISTS `wp_users`;\n",
    b"CREATE TABLE `wp_users` (\n",
    b"  `id` int(11) NOT NULL AUTO_INCREMENT,\n",
    b"  `email` varchar(255) NOT NULL UNIQUE,\n",
    b"  `name` varchar(100) DEFAULT 'guest',\n",
    b"  PRIMARY KEY (`id`),\n",
    b"  KEY `idx_name` (`name`)\n",
    b") ENGINE=InnoDB AUTO_INCREMENT=3 DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci;\n",
    b"INSERT INTO `wp_users` VALUES (1,'a@x.com','a'),(2,'b@x.com','b');\n",
    b"DROP TABLE IF EXISTS `wp_orders`;\n",
    b"CREATE TABLE `wp_orders` (\n",
    b"  `id` int(11) NOT NULL,\n",
    b"  `user_id` int(11) DEFAULT NULL,\n",
    b"  `total` decimal(10,2) NOT NULL DEFAULT '0.00',\n",
    b"  PRIMARY KEY (`id`),\n",
    b"  CONSTRAINT `fk_user` FOREIGN KEY (`user_id`) REFERENCES `wp_users` (`id`)\n",
    b") ENGINE=MyISAM;\n",
    b"INSERT INTO `wp_orders` VALUES (1,1,9.50);\n",
    b"INSERT INTO `wp_orders` VALUES (2,1,3.00),(3,2,4.25),(4,2,1.00);\n",
    b"INSERT INTO `wp_users` VALUES (3,'c@x.com','c');\n",
    b"INSERT INTO `logs` VALUES (1);\n",
]


@pytest.fixture
def sample_lines():
    return list(SAMPLE_LINES)


@pytest.fixture
def sample_dump(tmp_path):
    path = tmp_path / "dump.sql"
    path.write_bytes(b"".join(SAMPLE_LINES))
    return path


@pytest.fixture
def sample_analysis(sample_dump):
    return DumpScanner().scan(sample_dump)


@pytest.fixture
def write_dump(tmp_path):
    """Write raw SQL text to a dump file and return its path."""

    def _write(text: str, name: str = "dump.sql"):
        path = tmp_path / name
        path.write_bytes(text.encode("utf-8"))
        return path

    return _write


@pytest.fixture
def corrupt_gzip(tmp_path):
    """A gzip dump whose header is valid but whose deflate stream breaks partway through."""
    lines = b"".join(f"INSERT INTO `t` VALUES ({i},'{i * 7919}');\n".encode() for i in range(5000))
    data = bytearray(gzip.compress(lines))
    for i in range(2000, 2200):
        data[i] ^= 0xFF
    path = tmp_path / "corrupt.sql.gz"
    path.write_bytes(bytes(data))
    return path
