"""Send a fixed list of messages to a fixed list of recipients after configured delays."""
