"""Site extractors for Facebook, Threads, 9GAG and TikTok."""