"""Sample knowledge base entries loaded by `wabot seed`."""

SAMPLE_KNOWLEDGE = [
    {
        "category": "company",
        "keywords": "company, about us, who are you, business, services",
        "question": "What is your company about?",
        "answer": (
            "We are WABOT - an AI-powered WhatsApp automation platform that helps businesses "
            "streamline customer communication with intelligent chatbots, message broadcasting "
            "and integrated services."
        ),
        "priority": 5,
    },
    {
        "category": "company",
        "keywords": "services, what do you offer, products, features",
        "question": "What services do you offer?",
        "answer": (
            "We offer three main services:\n"
            "• AI Chatbot - conversational AI\n"
            "• WhatsApp Sender - message broadcasting\n"
            "• KWAP Inquiry - Malaysian pension lookup\n\n"
            "All integrated with n8n workflows."
        ),
        "priority": 5,
    },
    {
        "category": "support",
        "keywords": "help, support, problem, issue, trouble, error",
        "question": "I need technical support",
        "answer": (
            "I'm here to help! 🛠️\n\n"
            "• Verify your API keys are configured\n"
            "• Ensure your n8n workflows are active\n"
            "• Contact our support team if needed\n\n"
            "What specific issue are you experiencing?"
        ),
        "priority": 4,
    },
    {
        "category": "support",
        "keywords": "api key, configuration, setup, install",
        "question": "How do I set up API keys?",
        "answer": (
            "1. Copy .env.example to .env\n"
            "2. Add your OpenAI or Gemini API key\n"
            "3. Set N8N_WEBHOOK_URL\n"
            "4. Restart the application\n\n"
            "Which service do you need help with?"
        ),
        "priority": 4,
    },
    {
        "category": "pricing",
        "keywords": "price, pricing, cost, plan, subscription, fee, payment",
        "question": "What are your pricing plans?",
        "answer": (
            "💡 Starter: $19/month - 1,000 messages\n"
            "🚀 Professional: $49/month - 10,000 messages, priority support\n"
            "🏢 Enterprise: custom pricing, unlimited messages\n\n"
            "Ready to get started?"
        ),
        "priority": 3,
    },
    {
        "category": "pricing",
        "keywords": "free trial, demo, test, try",
        "question": "Do you offer a free trial?",
        "answer": (
            "Yes! 🎉 A 14-day free trial with full access and 500 free messages. "
            "No credit card required. Would you like help getting set up?"
        ),
        "priority": 4,
    },
    {
        "category": "whatsapp",
        "keywords": "whatsapp, integration, connect, phone, number",
        "question": "How do I connect WhatsApp?",
        "answer": (
            "1. Sign up for a WhatsApp Business API account\n"
            "2. Get your API credentials\n"
            "3. Configure the webhook in your n8n workflow\n"
            "4. Send a test message to the chatbot\n\n"
            "Need specific setup guidance?"
        ),
        "priority": 4,
    },
    {
        "category": "whatsapp",
        "keywords": "broadcast, sender, message, send, bulk",
        "question": "Can I send bulk messages?",
        "answer": (
            "Yes! 📨 The WhatsApp Sender sends targeted messages with templates, emojis "
            "and delivery tracking. Perfect for campaigns and announcements!"
        ),
        "priority": 3,
    },
    {
        "category": "ai",
        "keywords": "ai, artificial intelligence, smart, intelligent, gpt, gemini",
        "question": "How smart is your AI?",
        "answer": (
            "🧠 Replies are generated by OpenAI GPT or Google Gemini, grounded in your knowledge "
            "base and the recent conversation, and personalised per contact."
        ),
        "priority": 4,
    },
    {
        "category": "kwap",
        "keywords": "kwap, pension, malaysia, retirement, inquiry, ic number",
        "question": "What is the KWAP inquiry service?",
        "answer": (
            "KWAP Inquiry looks up Malaysian pension information by IC number 🔍, "
            "including service, pension and beneficiary details."
        ),
        "priority": 3,
    },
    {
        "category": "business",
        "keywords": "business hours, working hours, office, contact, location",
        "question": "What are your business hours?",
        "answer": (
            "The AI chatbot is available 24/7 🕐. Our support team works Monday-Friday, "
            "9 AM - 6 PM (GMT+8)."
        ),
        "priority": 2,
    },
    {
        "category": "integration",
        "keywords": "api, integration, webhook, n8n, developer, code",
        "question": "Do you provide API for integration?",
        "answer": (
            "Yes! 🔗 A REST API for chatbot control, webhooks for real-time events and "
            "n8n integration for visual workflow automation."
        ),
        "priority": 3,
    },
]
